from __future__ import annotations

import logging
from io import BytesIO

import cloudinary
import cloudinary.uploader
from PIL import Image, ImageOps, UnidentifiedImageError

from saarthi.config import Settings


logger = logging.getLogger(__name__)

LISTING_PHOTO_EDGE = 1600
LISTING_PHOTO_QUALITY = 82

_MAGIC = (
    b"\xFF\xD8\xFF",
    b"\x89PNG\r\n\x1a\n",
    b"GIF87a",
    b"GIF89a",
)


class NotAnImage(ValueError):
    pass


def configure_cloudinary(settings: Settings) -> bool:
    """
    Push credentials into the cloudinary SDK's global config.
    Returns False (uploads disabled) when any credential is missing.
    """
    if not settings.cloudinary_enabled:
        logger.info("Cloudinary not configured; property image uploads are disabled")
        return False
    cloudinary.config(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        secure=True,
    )
    logger.info("Cloudinary configured: folder=%s", settings.cloudinary_folder)
    return True


def cloudinary_enabled(settings: Settings) -> bool:
    return settings.cloudinary_enabled


def _sniff(raw: bytes) -> bool:
    head = raw[:16]
    if any(head.startswith(m) for m in _MAGIC):
        return True
    return head.startswith(b"RIFF") and head[8:12] == b"WEBP"


def listing_photo_jpeg(raw: bytes) -> bytes:
    """
    Normalise an uploaded listing photo: honour EXIF rotation, flatten to RGB,
    fit within LISTING_PHOTO_EDGE and re-encode as a progressive JPEG.
    """
    if len(raw) < 16 or not _sniff(raw):
        raise NotAnImage("unrecognised image signature")
    try:
        with Image.open(BytesIO(raw)) as src:
            img = ImageOps.exif_transpose(src).convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise NotAnImage(str(exc)) from exc

    img.thumbnail((LISTING_PHOTO_EDGE, LISTING_PHOTO_EDGE), Image.LANCZOS)
    out = BytesIO()
    img.save(out, format="JPEG", quality=LISTING_PHOTO_QUALITY, optimize=True, progressive=True)
    return out.getvalue()


def upload_image(settings: Settings, *, raw: bytes, public_id: str, reference: str) -> tuple[str, str]:
    """
    Upload one listing photo. Returns (secure_url, public_id).
    Raises NotAnImage for bytes Pillow cannot read; SDK errors propagate.
    """
    body = listing_photo_jpeg(raw)
    res = cloudinary.uploader.upload(
        BytesIO(body),
        resource_type="image",
        folder=settings.cloudinary_folder,
        public_id=public_id,
        tags=["property", reference],
        overwrite=False,
    )
    url = str(res.get("secure_url") or "").strip()
    stored_id = str(res.get("public_id") or "").strip()
    if not url or not stored_id:
        raise RuntimeError(f"Cloudinary returned no url for {public_id}")
    return url, stored_id


def destroy(*, public_id: str) -> None:
    # Best-effort: runs as a background task after the row is already gone.
    if not public_id:
        return
    try:
        cloudinary.uploader.destroy(public_id, resource_type="image", invalidate=True)
    except Exception:
        logger.exception("Cloudinary destroy failed public_id=%s", public_id)
