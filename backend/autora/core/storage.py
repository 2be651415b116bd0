"""
Object-storage adapter for car photos (Supabase Storage).

Photos of one car live under ``cars/<car_id>/`` in the ``car-images``
bucket and are served through public-read URLs.
"""
import base64
import binascii
import logging
import re
import time
from typing import List, Optional
from urllib.parse import urlparse

from supabase import create_client, Client

from .config import settings

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:image/([a-zA-Z0-9]+);base64,(.*)$", re.DOTALL)


class StorageError(Exception):
    """An upload or delete against the bucket failed."""


def is_image_data_url(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:image/")


def decode_data_url(data_url: str):
    """Split a ``data:image/<ext>;base64,...`` URL into (bytes, extension)."""
    match = DATA_URL_PATTERN.match(data_url)
    if match:
        extension, payload = match.group(1), match.group(2)
    else:
        extension, payload = "jpeg", data_url.split(",", 1)[-1]

    try:
        return base64.b64decode(payload, validate=False), extension.lower()
    except (binascii.Error, ValueError) as e:
        raise StorageError(f"Invalid image data: {e}") from e


class CarImageStorage:
    def __init__(self, client: Client, base_url: str, bucket: str = "car-images"):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def path_from_url(self, url: str) -> Optional[str]:
        """Recover the object path from a public URL, or None if it is not ours."""
        match = re.search(rf"/{re.escape(self.bucket)}/(.*)", urlparse(url).path)
        return match.group(1) if match else None

    def upload_data_url(self, car_id: str, index: int, data_url: str) -> str:
        """Upload one image and return its public URL."""
        content, extension = decode_data_url(data_url)
        file_name = f"image-{int(time.time() * 1000)}-{index}.{extension}"
        path = f"cars/{car_id}/{file_name}"

        try:
            self.client.storage.from_(self.bucket).upload(
                path,
                content,
                {"content-type": f"image/{extension}"},
            )
        except Exception as e:
            raise StorageError(f"Failed to upload image: {e}") from e

        logger.info(f"Uploaded {path} ({len(content)} bytes)")
        return self.public_url(path)

    def remove(self, paths: List[str]) -> None:
        if not paths:
            return
        try:
            self.client.storage.from_(self.bucket).remove(paths)
        except Exception as e:
            raise StorageError(f"Failed to delete images: {e}") from e
        logger.info(f"Removed {len(paths)} image(s) from {self.bucket}")


_storage = None

def get_storage() -> CarImageStorage:
    global _storage
    if _storage is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise StorageError("Supabase storage is not configured")
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        _storage = CarImageStorage(client, settings.SUPABASE_URL, settings.STORAGE_BUCKET)
    return _storage


def get_optional_storage() -> Optional[CarImageStorage]:
    """Storage for best-effort cleanup paths; None when it is not configured."""
    try:
        return get_storage()
    except StorageError as e:
        logger.warning(f"Storage unavailable: {e}")
        return None
