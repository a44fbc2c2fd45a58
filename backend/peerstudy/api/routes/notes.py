"""Notes library routes."""

from typing import Literal

from fastapi import APIRouter, File, Form, UploadFile, status

from peerstudy.api.deps import CurrentUser, Storage, Uow
from peerstudy.db.models import NoteType
from peerstudy.schemas.notes import (
    NoteListResponse,
    NoteMutationResponse,
    NoteRename,
    NoteUpdate,
    SaveFromChatRequest,
    parse_tags,
)
from peerstudy.services import notes

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("", response_model=NoteListResponse)
async def list_notes(
    current_user: CurrentUser,
    uow: Uow,
    search: str | None = None,
    reviewed: bool | None = None,
    subject: str | None = None,
    type: NoteType | None = None,
    sort: Literal["newest", "oldest"] = "newest",
    page: int = 1,
    limit: int | None = None,
) -> NoteListResponse:
    """
    List the current user's notes.

    Filters:
    - search: case-insensitive substring of the file name
    - reviewed: only reviewed / unreviewed notes
    - subject: notes tagged with this subject
    - type: Lecture, Assignment, Personal or Reference

    Out-of-range page / limit values are clamped rather than rejected.
    """
    return await notes.list_notes(
        uow,
        current_user.id,
        search=search,
        reviewed=reviewed,
        subject=subject,
        note_type=type,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.post("/upload", response_model=NoteMutationResponse, status_code=status.HTTP_201_CREATED)
async def upload_note(
    current_user: CurrentUser,
    uow: Uow,
    storage: Storage,
    file: UploadFile = File(...),
    subject_tags: str | None = Form(default=None),
    type: NoteType = Form(default=NoteType.LECTURE),
    description: str = Form(default=""),
    group_id: int | None = Form(default=None),
    file_name: str | None = Form(default=None),
) -> NoteMutationResponse:
    """Upload a file into the library. subject_tags is a JSON array or a comma list."""
    note = await notes.upload_note(
        uow,
        storage,
        current_user.id,
        original_name=file.filename or "",
        content=await file.read(),
        content_type=file.content_type,
        file_name=file_name,
        subject_tags=parse_tags(subject_tags),
        note_type=type,
        description=description,
        group_id=group_id,
    )
    return NoteMutationResponse(note=note)


@router.post("/save-from-chat", response_model=NoteMutationResponse, status_code=status.HTTP_201_CREATED)
async def save_from_chat(data: SaveFromChatRequest, current_user: CurrentUser, uow: Uow) -> NoteMutationResponse:
    note = await notes.save_from_chat(uow, current_user.id, data)
    return NoteMutationResponse(note=note)


@router.put("/{note_id}", response_model=NoteMutationResponse)
async def update_note(note_id: int, data: NoteUpdate, current_user: CurrentUser, uow: Uow) -> NoteMutationResponse:
    """Update a note. Only provided fields are changed."""
    note = await notes.update_note(uow, current_user.id, note_id, data)
    return NoteMutationResponse(note=note)


@router.patch("/{note_id}/rename", response_model=NoteMutationResponse)
async def rename_note(note_id: int, data: NoteRename, current_user: CurrentUser, uow: Uow) -> NoteMutationResponse:
    note = await notes.rename_note(uow, current_user.id, note_id, data.file_name)
    return NoteMutationResponse(note=note)


@router.delete("/{note_id}")
async def delete_note(note_id: int, current_user: CurrentUser, uow: Uow) -> dict:
    await notes.delete_note(uow, current_user.id, note_id)
    return {"success": True}
