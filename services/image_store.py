"""Helpers for saving scanned photos to disk.

The stored path doubles as the ScanSession `image_uri` and as the base
image for later hairstyle edits.
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os

from services.photo_normalizer import PhotoNormalizer


async def save_scan_photo(photo_dir: Path, image_bytes: bytes, normalizer: PhotoNormalizer | None = None) -> str:
    """Normalize the uploaded photo to JPEG, write it, and return its path.

    Raises:
        ValueError: If image bytes are missing or not an image.
    """
    if not image_bytes:
        raise ValueError("Image bytes are required for saving.")
    normalizer = normalizer or PhotoNormalizer()

    # Pillow work is blocking -> run in thread
    jpeg_bytes = await asyncio.to_thread(normalizer.to_jpeg, image_bytes)

    photo_dir = Path(photo_dir)
    photo_dir.mkdir(parents=True, exist_ok=True)
    path = photo_dir / f"{uuid.uuid4()}.jpg"
    async with aiofiles.open(path, "wb") as f:
        await f.write(jpeg_bytes)
    return str(path)


async def read_photo(path: str) -> bytes:
    async with aiofiles.open(path, "rb") as f:
        return await f.read()


async def delete_photo(path: str) -> bool:
    """Remove a stored photo. Returns False if it was already gone."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        return False
    return True
