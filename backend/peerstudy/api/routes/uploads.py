"""Chat attachment and voice note uploads."""

from fastapi import APIRouter, File, Request, UploadFile

from peerstudy.api.deps import CurrentUser, Storage
from peerstudy.services.storage import UploadKind

router = APIRouter(tags=["uploads"])


@router.post("/upload")
async def upload_attachment(current_user: CurrentUser, storage: Storage, file: UploadFile = File(...)) -> dict:
    """Store a chat attachment of any type and return its URL and MIME type."""
    stored = await storage.save(UploadKind.CHAT, file.filename or "", await file.read(), file.content_type)
    return {"url": stored.url, "type": stored.content_type}


@router.post("/chat/upload-voice")
async def upload_voice(
    request: Request,
    current_user: CurrentUser,
    storage: Storage,
    voice: UploadFile = File(...),
) -> dict:
    """Store a voice note. The URL is absolute so it can be played from any origin."""
    stored = await storage.save(UploadKind.VOICE, voice.filename or "", await voice.read(), voice.content_type)
    base_url = str(request.base_url).rstrip("/")
    return {"success": True, "file_url": f"{base_url}{stored.url}"}
