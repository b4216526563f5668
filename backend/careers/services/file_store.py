"""
Local upload storage for résumés, CVs and profile pictures.

Callers only ever see the returned reference string (``/uploads/<folder>/<file>``);
the profile and application rows store it as-is.
"""
import logging
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile

from .. import config
from ..utils.error_handlers import FileUploadError, get_error_message
from ..utils.validation import sanitize_filename

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}
IMAGE_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}

DOCUMENT_EXTENSIONS = {".pdf", ".doc", ".docx"}
DOCUMENT_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    # Some browsers send a generic type for .doc/.docx.
    "application/octet-stream",
}

PROFILE_PICTURES = "profile-pictures"
CVS = "cvs"

_RULES = {
    "image": (IMAGE_EXTENSIONS, IMAGE_CONTENT_TYPES, "invalid_image"),
    "document": (DOCUMENT_EXTENSIONS, DOCUMENT_CONTENT_TYPES, "invalid_document"),
}


def has_upload(file: UploadFile | None) -> bool:
    return bool(file is not None and file.filename)


async def save_upload(file: UploadFile, *, kind: str, folder: str) -> str:
    extensions, content_types, error_key = _RULES[kind]

    original_filename = sanitize_filename(Path(file.filename or "").name)
    ext = Path(original_filename).suffix.lower()
    if ext not in extensions:
        raise FileUploadError(get_error_message(error_key))
    if file.content_type and file.content_type not in content_types:
        raise FileUploadError(get_error_message(error_key))

    stored_filename = f"{uuid4().hex}{ext}"
    base_dir = Path(config.UPLOAD_DIR) / folder
    base_dir.mkdir(parents=True, exist_ok=True)
    dest = base_dir / stored_filename

    size = 0
    try:
        with open(dest, "wb") as out:
            while True:
                chunk = await file.read(1024 * 1024)
                if not chunk:
                    break
                size += len(chunk)
                if size > config.MAX_UPLOAD_BYTES:
                    raise FileUploadError(get_error_message("file_too_large"), status_code=413)
                out.write(chunk)
    except Exception:
        dest.unlink(missing_ok=True)
        raise
    finally:
        await file.close()

    logger.info("Stored upload %s (%d bytes) as %s/%s", original_filename, size, folder, stored_filename)
    return f"{UPLOAD_URL_PREFIX}/{folder}/{stored_filename}"
