from __future__ import annotations

import logging
from pathlib import Path

BLOB_LOGGER = logging.getLogger("medical_rental.blobs")

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


class BlobStoreError(RuntimeError):
    pass


class LocalBlobStore:
    """Stores uploaded bytes under ``root_dir`` and serves them from ``base_url``."""

    def __init__(self, root_dir: Path, base_url: str = "/uploads"):
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        relative = (path or "").strip().lstrip("/")
        if self.base_url and relative.startswith(self.base_url.lstrip("/") + "/"):
            relative = relative[len(self.base_url.lstrip("/")) + 1:]
        if not relative:
            raise BlobStoreError("Blob path is empty.")
        target = (self.root_dir / relative).resolve()
        root = self.root_dir.resolve()
        if root != target and root not in target.parents:
            raise BlobStoreError(f"Blob path escapes storage root: {path}")
        return target

    def url_for(self, path: str) -> str:
        relative = self._resolve(path).relative_to(self.root_dir.resolve())
        return f"{self.base_url}/{relative.as_posix()}"

    def put(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise BlobStoreError(f"Could not store {path}: {exc}") from exc
        BLOB_LOGGER.info("Stored blob %s (%d bytes)", target.name, len(data))
        return self.url_for(path)

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            return False
        try:
            target.unlink()
        except OSError as exc:
            BLOB_LOGGER.warning("Could not delete blob %s: %s", path, exc)
            return False
        return True
