import logging
import os
import uuid
from pathlib import Path
from typing import Optional
from config import get_settings
from errors import InternalError, ValidationError
from schemas.shared import MediaType

logger = logging.getLogger(__name__)

POSTS_MEDIA_SUBFOLDER = "posts"
ALLOWED_EXTENSIONS = {
    MediaType.IMAGE: {'.png', '.jpg', '.jpeg', '.webp', '.gif'},
    MediaType.VIDEO: {'.mp4', '.mov', '.avi', '.webm', '.mkv'},
}
DEFAULT_EXTENSIONS = {MediaType.IMAGE: '.png', MediaType.VIDEO: '.mp4'}


def posts_media_folder() -> str:
    return os.path.join(get_settings().UPLOAD_FOLDER, POSTS_MEDIA_SUBFOLDER)


def ensure_post_media_directory():
    Path(posts_media_folder()).mkdir(parents=True, exist_ok=True)


def infer_media_type(content_type: Optional[str]) -> MediaType:
    """Media kind from the upload's MIME type; anything else is rejected."""
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return MediaType.IMAGE
    if content_type.startswith("video/"):
        return MediaType.VIDEO
    raise ValidationError("Unsupported file type.")


def generate_uuid_filename(original_filename: Optional[str], media_type: MediaType) -> str:
    """Generate a UUID filename, keeping the original extension when it matches the media kind"""
    ext = Path(original_filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS[media_type]:
        ext = DEFAULT_EXTENSIONS[media_type]
    return f"{uuid.uuid4()}{ext}"


def save_post_media(file_content: bytes, filename: Optional[str], media_type: MediaType) -> str:
    """Store an uploaded blob and return its locator."""
    if len(file_content) > get_settings().MAX_MEDIA_SIZE:
        raise ValidationError("File exceeds the upload size limit.")
    uuid_filename = generate_uuid_filename(filename, media_type)
    try:
        ensure_post_media_directory()
        with open(os.path.join(posts_media_folder(), uuid_filename), 'wb') as f:
            f.write(file_content)
    except OSError:
        logger.exception("Error writing media file %s", uuid_filename)
        raise InternalError("Error uploading post.")
    return f"{POSTS_MEDIA_SUBFOLDER}/{uuid_filename}"


def media_path(locator: str) -> str:
    return os.path.join(posts_media_folder(), os.path.basename(locator))


def release_media(locator: Optional[str]) -> bool:
    """Best-effort blob removal; failures are logged, never raised."""
    if not locator:
        return False
    try:
        os.remove(media_path(locator))
        logger.info("Deleted media file %s", locator)
        return True
    except FileNotFoundError:
        logger.warning("Media file %s already missing", locator)
        return False
    except OSError:
        logger.warning("Error deleting media file %s", locator, exc_info=True)
        return False


def get_post_media_url(locator: Optional[str]) -> Optional[str]:
    if not locator:
        return None
    return f"/cdn/posts/{os.path.basename(locator)}"
