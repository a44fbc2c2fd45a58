"""Personal notes library: uploads, chat imports, listing and edits."""

import logging
import math
import os
import re
from typing import Any
from urllib.parse import urlparse

from peerstudy.config import get_settings
from peerstudy.db.models import Note, NoteType
from peerstudy.exceptions import Conflict, NotFound, ValidationFailure
from peerstudy.repositories import NoteQuery, UnitOfWork
from peerstudy.schemas.notes import NoteListResponse, NoteRead, NoteUpdate, SaveFromChatRequest
from peerstudy.services.groups import require_member
from peerstudy.services.storage import FileStorage, UploadKind

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]')

_TYPES_BY_EXTENSION = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/jpeg",
    ".doc": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".ppt": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".txt": "text/plain",
    ".webm": "video/webm",
    ".mp3": "audio/webm",
    ".wav": "audio/webm",
    ".m4a": "audio/webm",
}

DEFAULT_CHAT_FILE_NAME = "chat-file"


def sanitize_file_name(name: str) -> str:
    """Replace characters that are unsafe in file names with underscores."""
    return _UNSAFE_CHARS.sub("_", name or "").strip()


def extension_of(name: str) -> str:
    return os.path.splitext(name or "")[1]


def infer_file_type(file_name: str) -> str:
    return _TYPES_BY_EXTENSION.get(extension_of(file_name).lower(), "application/octet-stream")


def normalize_file_url(raw_url: str) -> str:
    """
    Reduce an absolute URL pointing at our uploads to its path.

    ``http://host/uploads/x.pdf`` becomes ``/uploads/x.pdf``; anything else
    (relative paths, foreign URLs) is returned unchanged.
    """
    if not raw_url:
        return raw_url
    parsed = urlparse(raw_url)
    prefix = get_settings().upload_url_prefix.rstrip("/") + "/"
    if parsed.scheme and parsed.netloc and parsed.path.startswith(prefix):
        return parsed.path
    return raw_url


def resolve_upload_name(requested: str | None, original: str) -> str:
    """Sanitised display name for an upload; a custom name keeps the original extension."""
    name = sanitize_file_name((requested or "").strip() or original) or original
    if not extension_of(name):
        name = f"{name}{extension_of(original)}"
    return name


async def _get_note_or_404(uow: UnitOfWork, user_id: int, note_id: int) -> Note:
    note = await uow.notes.get_for_user(note_id, user_id)
    if note is None:
        raise NotFound("Note", note_id)
    return note


async def upload_note(
    uow: UnitOfWork,
    storage: FileStorage,
    user_id: int,
    *,
    original_name: str,
    content: bytes,
    content_type: str | None,
    file_name: str | None = None,
    subject_tags: list[str] | None = None,
    note_type: NoteType = NoteType.LECTURE,
    description: str = "",
    group_id: int | None = None,
) -> NoteRead:
    """
    Store an uploaded file and record it in the caller's library.

    With DEDUPE_NOTE_UPLOADS a second upload with the same resolved name and
    byte size raises Conflict before anything is written.
    """
    safe_name = resolve_upload_name(file_name, original_name)
    if group_id is not None:
        await require_member(uow, user_id, group_id)

    if get_settings().dedupe_note_uploads:
        duplicate = await uow.notes.find_upload_duplicate(user_id, safe_name, len(content))
        if duplicate is not None:
            raise Conflict("Duplicate upload detected", context={"note_id": duplicate.id})

    stored = await storage.save(UploadKind.NOTES, original_name, content, content_type)
    try:
        note = await uow.notes.add(
            user_id=user_id,
            group_id=group_id,
            file_name=safe_name,
            file_url=stored.url,
            file_type=stored.content_type,
            subject_tags=list(subject_tags or []),
            type=note_type,
            description=description or "",
            file_size=stored.size,
        )
        await uow.commit()
    except Exception:
        await storage.delete(stored)
        raise

    logger.info("User %s uploaded note %s (%s)", user_id, note.id, safe_name)
    return NoteRead.model_validate(note)


async def save_from_chat(uow: UnitOfWork, user_id: int, data: SaveFromChatRequest) -> NoteRead:
    """Import a chat attachment into the caller's library without copying the file."""
    file_url = normalize_file_url(data.file_url.strip())
    if not file_url:
        raise ValidationFailure("File URL is required", field="file_url")

    raw_name = data.file_name or os.path.basename(urlparse(file_url).path) or DEFAULT_CHAT_FILE_NAME
    file_name = sanitize_file_name(raw_name) or DEFAULT_CHAT_FILE_NAME
    file_type = data.file_type or infer_file_type(file_name)

    if data.group_id is not None:
        await require_member(uow, user_id, data.group_id)

    if get_settings().dedupe_chat_saves:
        duplicate = await uow.notes.find_by_url(user_id, file_url)
        if duplicate is not None:
            raise Conflict("Already saved in notes", context={"note_id": duplicate.id})

    note = await uow.notes.add(
        user_id=user_id,
        group_id=data.group_id,
        file_name=file_name,
        file_url=file_url,
        file_type=file_type,
        subject_tags=data.subject_tags,
        type=data.type,
        description=data.description,
        chat_message_id=data.chat_message_id,
    )
    await uow.commit()
    return NoteRead.model_validate(note)


async def list_notes(
    uow: UnitOfWork,
    user_id: int,
    *,
    search: str | None = None,
    reviewed: bool | None = None,
    subject: str | None = None,
    note_type: NoteType | None = None,
    sort: str = "newest",
    page: int = 1,
    limit: int | None = None,
) -> NoteListResponse:
    settings = get_settings()
    page = max(1, page)
    limit = min(max(1, limit or settings.notes_page_size), settings.notes_max_page_size)

    query = NoteQuery(
        search=(search or "").strip(),
        reviewed=reviewed,
        subject=(subject or "").strip(),
        type=note_type,
        sort="oldest" if sort == "oldest" else "newest",
        offset=(page - 1) * limit,
        limit=limit,
    )
    notes, total = await uow.notes.list_for_user(user_id, query)
    return NoteListResponse(
        notes=[NoteRead.model_validate(note) for note in notes],
        page=page,
        limit=limit,
        total=total,
        total_pages=max(1, math.ceil(total / limit)),
    )


async def update_note(uow: UnitOfWork, user_id: int, note_id: int, data: NoteUpdate) -> NoteRead:
    await _get_note_or_404(uow, user_id, note_id)

    fields: dict[str, Any] = {}
    if data.reviewed is not None:
        fields["reviewed"] = data.reviewed
    if data.description is not None:
        fields["description"] = data.description
    if data.type is not None:
        fields["type"] = data.type
    if data.subject_tags is not None:
        fields["subject_tags"] = data.subject_tags
    if data.annotations is not None:
        fields["annotations"] = [a.model_dump(mode="json") for a in data.annotations]
    if data.file_name is not None:
        # Blank or fully-unsafe names keep the current one
        name = sanitize_file_name(data.file_name)
        if name:
            fields["file_name"] = name

    note = await uow.notes.update(note_id, **fields)
    await uow.commit()
    return NoteRead.model_validate(note)


async def rename_note(uow: UnitOfWork, user_id: int, note_id: int, file_name: str) -> NoteRead:
    requested = (file_name or "").strip()
    if not requested:
        raise ValidationFailure("File name is required", field="file_name")
    name = sanitize_file_name(requested)
    if not name:
        raise ValidationFailure("Invalid file name", field="file_name")

    await _get_note_or_404(uow, user_id, note_id)
    note = await uow.notes.update(note_id, file_name=name)
    await uow.commit()
    return NoteRead.model_validate(note)


async def delete_note(uow: UnitOfWork, user_id: int, note_id: int) -> None:
    # The stored file is left alone; chat imports point at shared attachments
    await _get_note_or_404(uow, user_id, note_id)
    await uow.notes.delete(note_id)
    await uow.commit()
