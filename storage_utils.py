"""Persist rendered images to a bucketed local store."""
from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path

import requests

from errors import StorageError

logger = logging.getLogger("paper2poster")


def _safe_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name or "").strip("._")
    return cleaned or "image.png"


class LocalImageStore:
    """Bucketed file store: ``<root>/<bucket>/<uuid>_<filename>``."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = Path(root_dir)

    def upload(self, image_bytes: bytes, bucket_id: str, filename: str) -> str:
        """Write image bytes and return the storage id ``<bucket>/<file>``."""
        bucket = _safe_name(bucket_id)
        stored = f"{uuid.uuid4().hex[:12]}_{_safe_name(filename)}"
        path = self.root_dir / bucket / stored
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(image_bytes)
        except OSError as exc:
            raise StorageError(f"Failed to store {filename} in bucket {bucket_id}: {exc}") from exc
        return f"{bucket}/{stored}"

    def path_for(self, storage_id: str) -> Path:
        return self.root_dir / storage_id


def download_and_upload(image_url: str, bucket_id: str, filename: str, store, timeout: float = 60) -> str:
    """Fetch a rendered image and hand its bytes to ``store.upload``.

    Args:
        image_url (str): Renderer image URL.
        bucket_id (str): Target bucket.
        filename (str): Name recorded alongside the stored file.
        store: Anything with ``upload(bytes, bucket_id, filename) -> str``.

    Returns:
        str: Storage id returned by the store.
    """
    try:
        r = requests.get(image_url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as exc:
        raise StorageError(f"Failed to download {image_url}: {exc}") from exc
    try:
        return store.upload(r.content, bucket_id, filename)
    except StorageError:
        raise
    except Exception as exc:
        raise StorageError(f"Failed to upload {filename}: {exc}") from exc
