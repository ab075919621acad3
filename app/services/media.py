"""Media handling: upload limits, local storage and preview handles."""
import logging
import time
import uuid
from pathlib import Path

from app.config import settings
from app.models.report import MediaType

logger = logging.getLogger(__name__)

ACCEPTED_PREFIXES = ("image/", "video/")


class MediaValidationError(Exception):
    pass


def validate_media(content_type: str | None, size: int, max_bytes: int | None = None) -> None:
    """Raise MediaValidationError if the upload is not an accepted image/video within the size limit."""
    limit = max_bytes if max_bytes is not None else settings.max_upload_bytes
    if size > limit:
        limit_mb = limit // (1024 * 1024)
        raise MediaValidationError(f"File is too large. Please upload a file smaller than {limit_mb}MB.")
    if not content_type or not content_type.startswith(ACCEPTED_PREFIXES):
        raise MediaValidationError(
            f"Unsupported file type: {content_type}. Only images and videos are allowed."
        )


def media_type_for(content_type: str) -> MediaType:
    return MediaType.IMAGE if content_type.startswith("image") else MediaType.VIDEO


def upload_dir() -> Path:
    path = Path(settings.upload_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def save_media(data: bytes, original_filename: str | None, content_type: str) -> tuple[str, MediaType]:
    """Write an upload to the media directory under a unique name."""
    suffix = Path(original_filename or "file").suffix
    filename = f"media-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}{suffix}"
    (upload_dir() / filename).write_bytes(data)
    logger.info("Stored media %s (%d bytes)", filename, len(data))
    return filename, media_type_for(content_type)


# Preview handles stand in for client-side object URLs; each must be released.
_previews: set[str] = set()


def create_preview() -> str:
    handle = f"preview-{uuid.uuid4().hex[:12]}"
    _previews.add(handle)
    return handle


def release_preview(handle: str | None) -> None:
    if handle:
        _previews.discard(handle)


def active_previews() -> set[str]:
    return set(_previews)
