from fastapi import HTTPException, UploadFile, status
from pathlib import Path
from typing import Iterable, List, Tuple
from uuid import uuid4
import logging
import mimetypes

from ..core.config import settings

logger = logging.getLogger(__name__)

AVATARS = "avatars"
PASSPORTS = "passports"
DIPLOMAS = "diplomas"
LICENSES = "licenses"

class FileService:
    """Stores uploaded files on disk and hands back their public URLs."""

    async def read_checked(self, file: UploadFile, allowed_types: Iterable[str]) -> bytes:
        if file.content_type not in allowed_types:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported file type: {file.content_type}"
            )

        # Never buffer more than one byte past the limit
        data = await file.read(settings.MAX_UPLOAD_SIZE + 1)
        if not data:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Uploaded file is empty"
            )
        if len(data) > settings.MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Uploaded file is too large"
            )
        return data

    def store(self, file: UploadFile, data: bytes, kind: str, owner_id: int) -> str:
        suffix = Path(file.filename or "").suffix.lower() or mimetypes.guess_extension(file.content_type) or ""
        file_name = f"{uuid4().hex}{suffix}"

        target_dir = Path(settings.UPLOAD_DIR) / kind / str(owner_id)
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / file_name).write_bytes(data)

        logger.info(f"Stored {kind} file {file_name} for user {owner_id}")
        return f"{settings.STATIC_URL.rstrip('/')}/{kind}/{owner_id}/{file_name}"

    def remove(self, urls: Iterable[str]) -> None:
        """Delete stored files by their public URLs."""
        prefix = settings.STATIC_URL.rstrip("/") + "/"
        for url in urls:
            if not url.startswith(prefix):
                continue
            path = Path(settings.UPLOAD_DIR) / url[len(prefix):]
            path.unlink(missing_ok=True)
            logger.info(f"Removed stored file {path}")

    async def save(self, file: UploadFile, kind: str, owner_id: int, allowed_types: Iterable[str]) -> str:
        data = await self.read_checked(file, allowed_types)
        return self.store(file, data, kind, owner_id)

    async def upload_avatar(self, file: UploadFile, user_id: int) -> str:
        return await self.save(file, AVATARS, user_id, settings.ALLOWED_IMAGE_TYPES)

    async def upload_passports(self, files: List[UploadFile], user_id: int) -> List[str]:
        """Store a batch of passport scans; nothing is written unless every file passes the checks."""
        checked: List[Tuple[UploadFile, bytes]] = [
            (file, await self.read_checked(file, settings.ALLOWED_DOCUMENT_TYPES))
            for file in files
        ]
        return [self.store(file, data, PASSPORTS, user_id) for file, data in checked]

    async def upload_diploma(self, file: UploadFile, doctor_id: int) -> str:
        return await self.save(file, DIPLOMAS, doctor_id, settings.ALLOWED_DOCUMENT_TYPES)

    async def upload_license(self, file: UploadFile, doctor_id: int) -> str:
        return await self.save(file, LICENSES, doctor_id, settings.ALLOWED_DOCUMENT_TYPES)
