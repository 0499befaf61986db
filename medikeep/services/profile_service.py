"""
Health profile use cases: one profile per owner, created lazily, plus the
profile image lifecycle.

Image replacement order: validate the upload, write the new file, point the
record at it, then remove the old file. A crash between steps can at worst
leave one orphaned old file; the record never references a missing one.
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from PIL import Image, ImageOps, UnidentifiedImageError

from medikeep.core.config import DEFAULT_PROFILE_IMAGE, get_settings
from medikeep.core.errors import AssetError, ConflictError, NotFound, ValidationError
from medikeep.domain.records import Owner, ProfileRecord
from medikeep.domain.rules import PROFILE_RULES, validate
from medikeep.repositories.asset_store import FileAssetStore
from medikeep.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/pjpeg", "image/png"}
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}
JPEG_MAGIC = b"\xFF\xD8\xFF"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
IMAGE_MAX_DIMENSIONS = (800, 800)
# Checked against the header before decoding; stays below Pillow's own bomb warning.
MAX_IMAGE_PIXELS = 40_000_000

_EMPTY_TEXT_FIELDS = (
    "phone",
    "address",
    "city",
    "province",
    "cnic",
    "medical_conditions",
    "current_medications",
    "past_surgeries",
    "food_allergies",
    "drug_allergies",
    "other_allergies",
    "emergency_contact_name",
    "emergency_contact_relationship",
    "emergency_contact_phone",
)


@dataclass
class ImageUpload:
    filename: str
    content_type: str
    data: bytes


def _has_valid_signature(data: bytes, content_type: str) -> bool:
    if content_type in {"image/jpeg", "image/jpg", "image/pjpeg"}:
        return data.startswith(JPEG_MAGIC)
    if content_type == "image/png":
        return data.startswith(PNG_MAGIC)
    return False


def check_image(upload: ImageUpload, max_bytes: int) -> None:
    """Allow-list type and extension, bound the size, sniff the signature."""
    field = "profileImage"
    content_type = (upload.content_type or "").lower()
    ext = os.path.splitext(upload.filename or "")[1].lower()
    if content_type not in ALLOWED_IMAGE_TYPES or ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError.single(field, "Only .png, .jpg and .jpeg format allowed!")
    if not upload.data:
        raise ValidationError.single(field, "No file uploaded")
    if len(upload.data) > max_bytes:
        raise ValidationError.single(field, f"Image exceeds {max_bytes // (1024 * 1024)}MB")
    if not _has_valid_signature(upload.data, content_type):
        raise ValidationError.single(field, "Invalid image file")


def normalize_image(data: bytes, max_size: tuple[int, int] = IMAGE_MAX_DIMENSIONS) -> bytes:
    """Apply EXIF orientation, bound the dimensions and re-encode as JPEG."""
    buffer = io.BytesIO()
    try:
        image = Image.open(io.BytesIO(data))
        width, height = image.size
        if width * height > MAX_IMAGE_PIXELS:
            raise ValidationError.single("profileImage", "Image dimensions are too large")
        image = ImageOps.exif_transpose(image)
        image = image.convert("RGB")
        image.thumbnail(max_size, Image.Resampling.LANCZOS)
        image.save(buffer, format="JPEG", quality=85, optimize=True)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        # Pillow decodes lazily, so truncated files only fail here.
        raise ValidationError.single("profileImage", "Invalid image file") from exc
    return buffer.getvalue()


class ProfileService:
    """Singleton-per-owner profile with lazy creation and image replacement."""

    def __init__(
        self,
        repository: SQLRepository | None = None,
        assets: FileAssetStore | None = None,
    ) -> None:
        self.settings = get_settings()
        self.repository = repository or SQLRepository()
        self.assets = assets or FileAssetStore(self.settings.uploads_dir)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _defaults(self, owner: Owner) -> dict:
        defaults = {attr: "" for attr in _EMPTY_TEXT_FIELDS}
        defaults.update(name=owner.name or "", email=owner.email or "", profile_image=DEFAULT_PROFILE_IMAGE)
        return defaults

    def get(self, owner: Owner) -> ProfileRecord:
        profile, created = self.repository.get_or_create_profile(owner.id, self._defaults(owner), self._now())
        if profile is None:
            raise ConflictError("Profile could not be created, please retry")
        if created:
            logger.info("Created new profile", extra={"owner_id": owner.id, "record_id": profile.id})
        return profile

    def update(self, owner: Owner, data) -> ProfileRecord:
        """Merge only the keys present in ``data``; absent fields stay untouched."""
        values = validate(data, PROFILE_RULES, partial=True)
        self.get(owner)
        profile = self.repository.update_profile(owner.id, values, self._now())
        if profile is None:
            raise NotFound("Profile")
        logger.info("Profile updated", extra={"owner_id": owner.id, "record_id": profile.id})
        return profile

    def replace_image(self, owner: Owner, upload: ImageUpload) -> ProfileRecord:
        check_image(upload, self.settings.max_image_bytes)
        current = self.repository.get_profile(owner.id)
        if current is None:
            raise NotFound("Profile")
        payload = normalize_image(upload.data)

        asset = self.assets.put(payload, "image/jpeg")
        try:
            updated = self.repository.swap_profile_image(
                owner.id, current.profile_image, asset.path, self._now()
            )
        except Exception:
            self._discard(asset.path)
            raise
        if updated is None:
            # Another request changed or removed the profile since we read it.
            self._discard(asset.path)
            raise ConflictError("Profile image changed concurrently, please retry")

        if current.has_custom_image:
            self._discard(current.profile_image)
        logger.info("Profile image replaced", extra={"owner_id": owner.id, "path": asset.path})
        return updated

    def _discard(self, path: str) -> None:
        """Best-effort removal; a failure is logged and never aborts the caller."""
        try:
            self.assets.delete(path)
        except AssetError as exc:
            logger.warning("Could not remove asset %s: %s", path, exc, extra={"path": path})
