"""Upload storage tests."""

import re

import pytest

from peerstudy.exceptions import ValidationFailure
from peerstudy.services.storage import ALLOW_LISTS, FileStorage, UploadKind


class TestValidation:
    def test_empty_filename(self, storage):
        with pytest.raises(ValidationFailure) as exc_info:
            storage.validate(UploadKind.CHAT, "", "image/png", 10)
        assert exc_info.value.message == "No file uploaded"

    def test_size_limit(self, storage):
        storage.validate(UploadKind.CHAT, "a.bin", None, storage.max_size)
        with pytest.raises(ValidationFailure):
            storage.validate(UploadKind.CHAT, "a.bin", None, storage.max_size + 1)

    def test_chat_attachments_accept_any_type(self, storage):
        storage.validate(UploadKind.CHAT, "archive.zip", "application/zip", 10)

    @pytest.mark.parametrize(
        "filename, content_type",
        [
            ("memo.m4a", "application/octet-stream"),  # extension alone
            ("blob", "audio/webm"),  # MIME type alone
            ("recording.WAV", None),
        ],
    )
    def test_voice_accepts_extension_or_mime(self, storage, filename, content_type):
        storage.validate(UploadKind.VOICE, filename, content_type, 10)

    def test_voice_rejects_other_files(self, storage):
        with pytest.raises(ValidationFailure) as exc_info:
            storage.validate(UploadKind.VOICE, "slides.pdf", "application/pdf", 10)
        assert exc_info.value.message == ALLOW_LISTS[UploadKind.VOICE].message


class TestSave:
    def test_stored_name(self):
        assert re.fullmatch(r"\d{13}-my_lecture_notes.pdf", FileStorage.stored_name("my lecture\tnotes.pdf"))
        assert FileStorage.stored_name("../../etc/passwd").endswith("-passwd")

    async def test_save_writes_under_the_kind_directory(self, storage):
        stored = await storage.save(UploadKind.VOICE, "memo.webm", b"abc", "audio/webm")

        assert stored.path.parent == storage.root / "voice"
        assert stored.path.read_bytes() == b"abc"
        assert stored.url == f"/uploads/voice/{stored.path.name}"
        assert stored.size == 3

    async def test_chat_uploads_sit_at_the_root(self, storage):
        stored = await storage.save(UploadKind.CHAT, "a.txt", b"a")
        assert stored.url == f"/uploads/{stored.path.name}"
        assert stored.content_type == "application/octet-stream"

    async def test_delete(self, storage):
        stored = await storage.save(UploadKind.NOTES, "a.pdf", b"a", "application/pdf")
        await storage.delete(stored)
        assert not stored.path.exists()
        # Deleting again is harmless
        await storage.delete(stored)
