"""Filesystem storage for uploaded profile images.

The store enforces no policy (type, size); it writes bytes and removes files.
Assets are addressed by their public path, e.g.
``/uploads/profile-images/profile-<hex>.jpg``.
"""
from __future__ import annotations

import logging
import os
import uuid

from medikeep.core.errors import AssetError
from medikeep.domain.records import Asset

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"
IMAGE_SUBDIR = "profile-images"

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


class FileAssetStore:
    def __init__(self, root_dir: str, public_prefix: str = PUBLIC_PREFIX) -> None:
        self.root_dir = os.path.abspath(root_dir)
        self.public_prefix = public_prefix.rstrip("/")

    def _local_path(self, path: str) -> str | None:
        """Map a public path back to a file under root_dir; None if it points elsewhere."""
        value = (path or "").split("?", 1)[0]
        prefix = self.public_prefix + "/"
        if not value.startswith(prefix):
            return None
        candidate = os.path.abspath(os.path.join(self.root_dir, value[len(prefix):]))
        if os.path.commonpath([candidate, self.root_dir]) != self.root_dir:
            return None
        return candidate

    def exists(self, path: str) -> bool:
        local = self._local_path(path)
        return bool(local) and os.path.isfile(local)

    def put(self, data: bytes, content_type: str) -> Asset:
        ext = _EXTENSIONS.get(content_type, ".bin")
        filename = f"profile-{uuid.uuid4().hex}{ext}"
        dest_dir = os.path.join(self.root_dir, IMAGE_SUBDIR)
        dest_path = os.path.join(dest_dir, filename)
        tmp_path = dest_path + ".part"
        try:
            os.makedirs(dest_dir, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(data)
            os.replace(tmp_path, dest_path)
        except OSError as exc:
            logger.error("Failed to store asset %s: %s", filename, exc)
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise AssetError("Could not store image") from exc
        return Asset(
            path=f"{self.public_prefix}/{IMAGE_SUBDIR}/{filename}",
            content_type=content_type,
            size=len(data),
        )

    def delete(self, path: str) -> None:
        """Remove the file behind ``path``. Missing files are not an error."""
        local = self._local_path(path)
        if not local:
            logger.warning("Refusing to delete asset outside the store: %s", path, extra={"path": path})
            return
        try:
            os.remove(local)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise AssetError(f"Could not delete {path}") from exc
