import logging
import secrets
from pathlib import Path
from typing import List, Tuple

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from odontolegal.config import settings
from odontolegal.evidence.schemas import FileReference
from odontolegal.shared.exceptions import ValidationFailed
from odontolegal.shared.models import utcnow

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Writes uploads under ``UPLOAD_DIR/<folder>/`` and hands back opaque file references."""

    def __init__(
        self,
        root: str = settings.UPLOAD_DIR,
        allowed_types: List[str] = settings.ALLOWED_UPLOAD_TYPES,
        max_bytes: int = settings.MAX_UPLOAD_BYTES,
        max_files: int = settings.MAX_UPLOAD_FILES,
    ):
        self.root = Path(root)
        self.allowed_types = allowed_types
        self.max_bytes = max_bytes
        self.max_files = max_files

    def _target(self, folder: str, original_name: str) -> Path:
        suffix = Path(original_name).suffix
        stamp = utcnow().strftime("%Y%m%d%H%M%S")
        return self.root / folder / f"{folder}-{stamp}-{secrets.token_hex(6)}{suffix}"

    async def _read_checked(self, upload: UploadFile) -> bytes:
        if upload.content_type not in self.allowed_types:
            raise ValidationFailed(
                f"Unsupported file type {upload.content_type}. Send images (JPG, PNG, GIF) or documents (PDF, DOC, DOCX)."
            )
        content = await upload.read()
        if len(content) > self.max_bytes:
            raise ValidationFailed(f"File {upload.filename} exceeds {self.max_bytes} bytes")
        return content

    async def save_all(self, uploads: List[UploadFile], folder: str = "evidences") -> List[FileReference]:
        """Validate every upload, then write them. Nothing stays on disk if any of them fails."""
        uploads = [u for u in uploads if u.filename]
        if len(uploads) > self.max_files:
            raise ValidationFailed(f"At most {self.max_files} files can be uploaded at once")

        checked: List[Tuple[UploadFile, bytes]] = []
        for upload in uploads:
            checked.append((upload, await self._read_checked(upload)))

        stored: List[FileReference] = []
        try:
            for upload, content in checked:
                stored.append(await self._write(upload, content, folder))
        except OSError:
            await self.discard(stored)
            raise
        return stored

    async def _write(self, upload: UploadFile, content: bytes, folder: str) -> FileReference:
        target = self._target(folder, upload.filename)
        target.parent.mkdir(parents=True, exist_ok=True)
        await run_in_threadpool(target.write_bytes, content)
        logger.info(f"Stored upload {upload.filename} as {target} ({len(content)} bytes)")

        return FileReference(
            filename=target.name,
            original_name=upload.filename,
            storage_path=str(target),
            mime_type=upload.content_type,
            size_bytes=len(content),
            uploaded_at=utcnow(),
        )

    async def discard(self, files: List[FileReference]) -> None:
        """Remove stored files whose evidence row was never written."""
        for ref in files:
            path = Path(ref.storage_path)
            await run_in_threadpool(path.unlink, True)
            logger.info(f"Discarded upload {ref.original_name} at {path}")


def get_storage() -> LocalFileStorage:
    return LocalFileStorage()
