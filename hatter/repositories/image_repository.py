from __future__ import annotations
from pathlib import Path
from typing import Union, Iterable, Iterator
import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv
import os
import logging
from ..models.image import Image

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles file I/O and decoding for Image entities and prop rasters.
    """
    def __init__(self):
        exts = os.getenv("VALID_IMAGE_EXTENSIONS", ".jpg,.jpeg,.png,.webp,.bmp")
        self.VALID_EXTS = {ext.strip().lower() for ext in exts.split(",") if ext.strip()}

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        if path is None:
            return Image(pixels)
        return Image(pixels=pixels, path=Path(path))

    @staticmethod
    def load(path: Union[str, Path]) -> Image:
        path = Path(path)
        arr_bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if arr_bgr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        return Image(pixels=np.ascontiguousarray(arr_bgr[:, :, ::-1]), path=path)

    @staticmethod
    def decode(data: bytes, path: Union[str, Path] = None) -> Image:
        """Decode an in-memory upload (any format OpenCV reads) into an RGB Image."""
        buffer = np.frombuffer(data, dtype=np.uint8)
        arr_bgr = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
        if arr_bgr is None:
            raise ValueError("Uploaded bytes are not a decodable image")
        return Image(pixels=np.ascontiguousarray(arr_bgr[:, :, ::-1]),
                     path=Path(path) if path else None)

    @staticmethod
    def load_rgba(path: Union[str, Path]) -> np.ndarray:
        """
        Read a raster keeping its alpha channel. Opaque formats get a fully
        opaque alpha channel so the compositor can treat every prop alike.
        """
        path = Path(path)
        arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise FileNotFoundError(f"Prop raster not found or unreadable: {path}")
        if arr.dtype != np.uint8:
            arr = cv2.convertScaleAbs(arr, alpha=255.0 / np.iinfo(arr.dtype).max)
        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        if arr.shape[2] == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)

    @staticmethod
    def save(pixels: np.ndarray, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        PILImage.fromarray(pixels).save(path)

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield Image objects one at a time.  Nothing accumulates in memory.
        Unreadable files are logged and skipped.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if not p.is_file() or p.suffix.lower() not in allowed:
                logger.debug(f"Skipping {p}")
                continue
            try:
                image = self.load(p)
            except FileNotFoundError as err:
                logger.warning(f"Skipping {p.name}: {err}")
                continue
            yield image
