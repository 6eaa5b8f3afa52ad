"""
Image payload handed to vision backends.
"""

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePayload:
    """Decoded image bytes plus the metadata backends need."""
    data: bytes
    mime_type: str
    width: int
    height: int
    path: Optional[str] = None

    @classmethod
    def from_bytes(cls, data: bytes, path: Optional[str] = None) -> "ImagePayload":
        """
        Inspect raw bytes with Pillow.

        Raises:
            ValueError: if the bytes are not a decodable image.
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                fmt = img.format or "JPEG"
                width, height = img.size
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"Not a decodable image: {path or '<bytes>'}") from e

        mime_type = Image.MIME.get(fmt.upper(), "image/jpeg")
        return cls(data=data, mime_type=mime_type, width=width, height=height, path=path)

    @classmethod
    def from_path(cls, path: str) -> "ImagePayload":
        resolved = Path(path).resolve()
        if not resolved.exists():
            raise FileNotFoundError(f"Image file not found: {resolved}")
        return cls.from_bytes(resolved.read_bytes(), path=str(resolved))

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_pil(self) -> Image.Image:
        return Image.open(io.BytesIO(self.data))
