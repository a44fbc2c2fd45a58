"""
Local upload storage.

Files land in sub-directories of UPLOAD_DIR and are served by the static file
mount under UPLOAD_URL_PREFIX:

    uploads/           chat attachments (any type)
    uploads/voice/     voice notes
    uploads/notes/     notes library files
    uploads/groups/    group icons

Stored names are ``<epoch-millis>-<original name>`` with whitespace replaced
by underscores and any directory part stripped.
"""

import logging
import os
import re
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import aiofiles

from peerstudy.config import get_settings
from peerstudy.exceptions import ValidationFailure

logger = logging.getLogger(__name__)


class UploadKind(str, Enum):
    CHAT = ""
    VOICE = "voice"
    NOTES = "notes"
    GROUP_ICON = "groups"


@dataclass(frozen=True)
class AllowList:
    extensions: frozenset[str]
    mime_types: frozenset[str]
    message: str

    def accepts(self, filename: str, content_type: str | None) -> bool:
        # Either signal is enough; browsers are inconsistent about audio MIME types
        return Path(filename).suffix.lower() in self.extensions or (content_type or "") in self.mime_types


ALLOW_LISTS: dict[UploadKind, AllowList] = {
    UploadKind.VOICE: AllowList(
        extensions=frozenset({".mp3", ".wav", ".m4a", ".webm"}),
        mime_types=frozenset({
            "audio/mpeg",
            "audio/mp3",
            "audio/wav",
            "audio/x-wav",
            "audio/webm",
            "audio/mp4",
            "audio/x-m4a",
            "video/webm",
        }),
        message="Only audio files (.mp3, .wav, .m4a, .webm) are allowed",
    ),
    UploadKind.NOTES: AllowList(
        extensions=frozenset({
            ".pdf", ".jpg", ".jpeg", ".png", ".webp", ".gif", ".docx", ".doc", ".ppt", ".pptx", ".txt",
        }),
        mime_types=frozenset({
            "application/pdf",
            "image/jpeg",
            "image/png",
            "image/webp",
            "image/gif",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/msword",
            "application/vnd.ms-powerpoint",
            "application/vnd.openxmlformats-officedocument.presentationml.presentation",
            "text/plain",
        }),
        message="Unsupported note file type",
    ),
    UploadKind.GROUP_ICON: AllowList(
        extensions=frozenset({".jpg", ".jpeg", ".png", ".webp", ".gif"}),
        mime_types=frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"}),
        message="Only image files are allowed for group icon",
    ),
}


@dataclass(frozen=True)
class StoredFile:
    url: str
    path: Path
    size: int
    content_type: str
    original_name: str


class FileStorage:
    """Validates and writes uploads below a root directory."""

    def __init__(
        self,
        root: str | Path | None = None,
        *,
        url_prefix: str | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()
        self.root = Path(root or settings.upload_dir).resolve()
        self.url_prefix = (url_prefix or settings.upload_url_prefix).rstrip("/")
        self.max_size = max_size or settings.max_upload_size_bytes

    def ensure_directories(self) -> None:
        for kind in UploadKind:
            (self.root / kind.value).mkdir(parents=True, exist_ok=True)
        logger.info("Upload storage ready at %s", self.root)

    def validate(self, kind: UploadKind, filename: str, content_type: str | None, size: int) -> None:
        if not filename:
            raise ValidationFailure("No file uploaded", field="file")
        if size > self.max_size:
            max_mb = self.max_size / (1024 * 1024)
            raise ValidationFailure(
                f"File size exceeds maximum of {max_mb:.0f}MB",
                field="file",
                context={"size": size, "max_size": self.max_size},
            )
        allow_list = ALLOW_LISTS.get(kind)
        if allow_list is not None and not allow_list.accepts(filename, content_type):
            raise ValidationFailure(
                allow_list.message,
                field="file",
                context={"filename": filename, "content_type": content_type},
            )

    @staticmethod
    def stored_name(filename: str) -> str:
        base = re.sub(r"\s+", "_", Path(filename).name) or "file"
        return f"{int(time.time() * 1000)}-{base}"

    async def save(
        self,
        kind: UploadKind,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> StoredFile:
        """Validate, then write the bytes. Returns where the file lives and its public URL."""
        self.validate(kind, filename, content_type, len(content))

        name = self.stored_name(filename)
        directory = self.root / kind.value
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name

        async with aiofiles.open(path, "wb") as f:
            await f.write(content)

        url_path = f"{kind.value}/{name}" if kind.value else name
        logger.info("Stored upload %s (%d bytes)", url_path, len(content))
        return StoredFile(
            url=f"{self.url_prefix}/{url_path}",
            path=path,
            size=len(content),
            content_type=content_type or "application/octet-stream",
            original_name=filename,
        )

    async def delete(self, stored: StoredFile) -> None:
        """Remove a stored file. Used to clean up after a failed insert."""
        try:
            if stored.path.exists():
                os.remove(stored.path)
                logger.info("Removed upload %s", stored.path.name)
        except OSError as e:
            logger.warning("Failed to remove upload %s: %s", stored.path, e)


_storage: FileStorage | None = None


def get_storage() -> FileStorage:
    """FastAPI dependency for the process-wide upload storage."""
    global _storage
    if _storage is None:
        _storage = FileStorage()
    return _storage
