# utils/image_store.py
import logging
import shutil
import uuid
from pathlib import Path
from typing import Optional, Tuple

from fastapi import UploadFile

from config import settings
from utils.errors import InvalidInputError, InternalError

logger = logging.getLogger(__name__)

# Stored extension follows the checked content type, never the client filename
EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


class ImageStore:
    """Blob store for product images addressed by an opaque public id.

    Files live under ``upload_dir`` and are served by the static mount at
    ``url_prefix``.
    """

    def __init__(self, upload_dir: str, url_prefix: str):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def upload(self, file: UploadFile) -> Tuple[str, str]:
        if file.content_type not in EXTENSIONS:
            raise InvalidInputError("Invalid file type")

        ext = EXTENSIONS[file.content_type]
        public_id = f"{uuid.uuid4().hex}.{ext}"
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.upload_dir / public_id, "wb") as buffer:
                shutil.copyfileobj(file.file, buffer)
        except OSError as e:
            logger.error("Image upload failed: %s", e)
            raise InternalError("Could not store the image")
        finally:
            file.file.close()
        return f"{self.url_prefix}/{public_id}", public_id

    def delete(self, public_id: str) -> None:
        path = self.upload_dir / public_id
        # Refuse anything that escapes the upload directory
        if path.resolve().parent != self.upload_dir.resolve():
            raise ValueError(f"Invalid image handle: {public_id}")
        path.unlink(missing_ok=True)

    def discard(self, public_id: Optional[str]) -> None:
        """Best-effort delete used to compensate a failed write; never raises."""
        if not public_id:
            return
        try:
            self.delete(public_id)
        except (OSError, ValueError) as e:
            logger.warning("Could not remove image %s: %s", public_id, e)


image_store = ImageStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)

def get_image_store() -> ImageStore:
    return image_store
