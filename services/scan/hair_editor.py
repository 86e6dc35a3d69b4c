"""Hairstyle edits of the scanned photo using the OpenAI image edit endpoint."""

import base64
import io
import logging
import time
from pathlib import Path
from typing import List, Optional

import aiofiles
from openai import AsyncOpenAI

from services.errors import NotConfiguredError, UpstreamError

LOGGER = logging.getLogger(__name__)

DEFAULT_HAIR_REQUEST = "subtle improvement with natural volume and texture"


def build_hair_only_prompt(user_prompt: str) -> str:
    """Wrap the user's request in instructions that only allow hair changes."""
    trimmed = (user_prompt or "").strip()
    return "\n".join(
        [
            "Edit ONLY the hairstyle of the person in the provided photo.",
            "Keep the same person, identity, background, lighting, pose, framing, and clothes.",
            "Do NOT add or replace subjects, objects, animals, text, logos, or scenes.",
            "Do NOT generate a new scene; perform an image edit of the input photo.",
            "Change HAIR ONLY based on the request. No makeup or face reshaping. Maintain photorealism.",
            f"User hair request: {trimmed or DEFAULT_HAIR_REQUEST}",
        ]
    )


class HairStyleEditor:
    """Generate edited versions of a base photo and store them as PNG files."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI],
        output_dir: Path,
        *,
        model: str = "gpt-image-1",
    ) -> None:
        self.client = client
        self.output_dir = Path(output_dir)
        self.model = model

    async def generate(self, prompt: str, base_image_path: Optional[str]) -> List[str]:
        """Return file paths of the generated images (possibly empty).

        Raises:
            ValueError: No base image was given or it does not exist.
            NotConfiguredError: No OpenAI client is available.
            UpstreamError: The edit request failed.
        """
        if self.client is None:
            raise NotConfiguredError("Missing OPENAI_API_KEY")
        if not base_image_path:
            raise ValueError("A base image is required to edit the hairstyle.")
        source = Path(base_image_path)
        if not source.is_file():
            raise ValueError(f"Base image not found: {base_image_path}")

        async with aiofiles.open(source, "rb") as fh:
            image_bytes = await fh.read()
        image_file = io.BytesIO(image_bytes)
        image_file.name = source.name

        try:
            response = await self.client.images.edit(
                model=self.model,
                image=image_file,
                prompt=build_hair_only_prompt(prompt),
            )
        except Exception as exc:
            logging.error("Hairstyle edit request failed: %s", exc)
            raise UpstreamError(f"Image edit failed: {exc}") from exc

        return await self._write_images(getattr(response, "data", None) or [])

    async def _write_images(self, items) -> List[str]:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stamp = int(time.time() * 1000)
        paths: List[str] = []
        for index, item in enumerate(items):
            b64 = getattr(item, "b64_json", None)
            if not b64:
                continue
            path = self.output_dir / f"hair-gen-{stamp}-{index}.png"
            async with aiofiles.open(path, "wb") as fh:
                await fh.write(base64.b64decode(b64))
            paths.append(str(path))
        LOGGER.info("Stored %s generated hairstyle images", len(paths))
        return paths
