"""Photo normalizer service.

Small OOP wrapper around Pillow that turns an uploaded photo (raw bytes of
any format Pillow can open) into a bounded RGB JPEG suitable both for
storage and for the vision model.

Example:
    normalizer = PhotoNormalizer(max_edge=1024)
    jpeg_bytes = normalizer.to_jpeg(raw_upload)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, ImageOps


class PhotoNormalizer:
    """Normalize uploaded photos.

    Args:
        max_edge: Longest allowed side in pixels; larger photos are downscaled.
        background: Color used when flattening images with alpha to RGB.
        quality: JPEG quality for the output.
    """

    def __init__(self, max_edge: int = 1024, background: Tuple[int, int, int] | None = None, quality: int = 90):
        self.max_edge = max_edge
        self.background = background or (255, 255, 255)
        self.quality = quality

    def to_jpeg(self, data: bytes) -> bytes:
        """Return JPEG bytes for an uploaded photo.

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        if not data:
            raise ValueError("Photo bytes are required.")
        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except Exception as exc:
            raise ValueError("Uploaded bytes are not a supported image format") from exc

        # Honor camera orientation before resizing
        src = ImageOps.exif_transpose(src)
        src = src.convert("RGBA")
        src.thumbnail((self.max_edge, self.max_edge), Image.LANCZOS)

        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])

        out_io = io.BytesIO()
        background.save(out_io, format="JPEG", quality=self.quality)
        return out_io.getvalue()
