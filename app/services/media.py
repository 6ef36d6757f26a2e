"""Profile image storage on the local filesystem under MEDIA_ROOT."""

import logging
import secrets
import time
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from fastapi import UploadFile

from app.core.errors import ImageUploadError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Relative directory (under MEDIA_ROOT) stored in User.image and served at /images.
USER_IMAGE_DIR = PurePosixPath("images/users")
ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpeg", ".jpg", ".png", ".gif", ".webp"})
ALLOWED_IMAGE_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)


def _media_root(settings: "Settings") -> Path:
    return Path(settings.MEDIA_ROOT).resolve()


def _resolve_stored_path(settings: "Settings", image_path: str) -> Path | None:
    """Absolute path for a stored relative path, or None if it escapes MEDIA_ROOT."""
    root = _media_root(settings)
    full = (root / image_path).resolve()
    if not full.is_relative_to(root):
        return None
    return full


def _build_filename(user_id: int, ext: str) -> str:
    millis = int(time.time() * 1000)
    return f"user_{user_id}_{millis}-{secrets.randbelow(10**9)}{ext}"


async def save_user_image(
    upload: UploadFile, user_id: int, settings: "Settings"
) -> str:
    """
    Validate and store an uploaded image; return its path relative to MEDIA_ROOT.

    Raises ImageUploadError for a missing file, a disallowed type or an
    oversize payload. Nothing is written when validation fails.
    """
    filename = upload.filename or ""
    ext = PurePosixPath(filename).suffix.lower()
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS or content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        logger.warning(
            "File upload rejected - invalid type filename=%s content_type=%s",
            filename,
            content_type,
        )
        raise ImageUploadError(
            "Only image files are allowed! (jpeg, jpg, png, gif, webp)"
        )

    content = await upload.read(settings.MAX_IMAGE_BYTES + 1)
    if len(content) > settings.MAX_IMAGE_BYTES:
        limit_mb = settings.MAX_IMAGE_BYTES // (1024 * 1024)
        raise ImageUploadError(
            f"File is too large. Maximum size is {limit_mb}MB"
            if limit_mb
            else f"File is too large. Maximum size is {settings.MAX_IMAGE_BYTES} bytes"
        )
    if not content:
        raise ImageUploadError("Please upload an image file")

    relative = USER_IMAGE_DIR / _build_filename(user_id, ext)
    target = _media_root(settings) / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    logger.info(
        "File upload accepted filename=%s stored=%s size=%s",
        filename,
        relative,
        len(content),
    )
    return str(relative)


def delete_image(image_path: str | None, settings: "Settings") -> bool:
    """Remove a stored image. Returns True if a file was deleted; failures are logged."""
    if not image_path:
        return False
    full = _resolve_stored_path(settings, image_path)
    if full is None:
        logger.warning("Refusing to delete image outside media root: %s", image_path)
        return False
    try:
        if full.is_file():
            full.unlink()
            logger.info("Old image deleted path=%s", image_path)
            return True
    except OSError:
        logger.exception("Failed to delete old image path=%s", image_path)
    return False


def image_url(base_url: str, image_path: str | None) -> str | None:
    """Public URL for a stored image (files are served from /<image_path>)."""
    if not image_path:
        return None
    return f"{base_url.rstrip('/')}/{image_path.lstrip('/')}"
