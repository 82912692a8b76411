from __future__ import annotations
from pathlib import Path
from typing import Union
from io import BytesIO
import numpy as np
from PIL import Image as PILImage

from ..repositories.image_repository import ImageRepository

EXPORT_SUFFIX = "-hatted.png"


class ExportService:
    """PNG encoding and naming for flattened results."""

    def __init__(self):
        self.image_repository = ImageRepository()

    @staticmethod
    def export_filename(original_name: str | None) -> str:
        """'party.photo.jpg' -> 'party.photo-hatted.png'; empty stems become 'image'."""
        name = Path(original_name or "").name
        stem = name.rsplit(".", 1)[0] if "." in name else name
        return f"{stem or 'image'}{EXPORT_SUFFIX}"

    @staticmethod
    def encode_png(pixels: np.ndarray) -> bytes:
        """
        Encode an RGB raster as PNG bytes.
        Ensures the NumPy array is C-contiguous.
        """
        if not pixels.flags['C_CONTIGUOUS']:
            pixels = np.ascontiguousarray(pixels)
        buffer = BytesIO()
        PILImage.fromarray(pixels).save(buffer, format="PNG")
        return buffer.getvalue()

    def save(self, pixels: np.ndarray, path: Union[str, Path]) -> Path:
        path = Path(path)
        self.image_repository.save(pixels, path)
        return path
