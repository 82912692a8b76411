from __future__ import annotations
from pathlib import Path
from typing import Dict, Tuple
from dotenv import load_dotenv
import os
import logging

from ..models.errors import AssetConfigurationError, DetectorUnavailable
from ..models.geometry import Point
from ..models.prop_asset import PropAsset
from .image_repository import ImageRepository

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Santa hat shipped with the app: 1113x846 webp, brim points measured from top left.
DEFAULT_ASSET_ID = "santa_hat"
DEFAULT_IMAGE_PATH = "assets/santa_hat.webp"
DEFAULT_LEFT_POINT = "240,557"
DEFAULT_RIGHT_POINT = "855,563"
DEFAULT_WIDTH = "1113"
DEFAULT_HEIGHT = "846"


def _parse_point(raw: str, name: str) -> Point:
    try:
        x, y = (float(v) for v in raw.split(","))
    except ValueError as err:
        raise AssetConfigurationError(f"{name} must look like 'x,y', got {raw!r}") from err
    return Point(x, y)


def _parse_size(raw: str, name: str) -> int:
    try:
        return int(raw)
    except ValueError as err:
        raise AssetConfigurationError(f"{name} must be a whole number of pixels, got {raw!r}") from err


class PropAssetRepository:
    """
    Asset loader: resolves a prop id to a validated PropAsset.
    Each id is loaded once per process and then shared read-only.
    """

    _cache: Dict[str, PropAsset] = {}

    def __init__(self, image_repository: ImageRepository | None = None):
        self.image_repository = image_repository or ImageRepository()

    @staticmethod
    def _config() -> Tuple[Path, Point, Point, Tuple[int, int] | None]:
        prefix = "HAT"
        image_path = Path(os.getenv(f"{prefix}_IMAGE_PATH", DEFAULT_IMAGE_PATH))
        left = _parse_point(os.getenv(f"{prefix}_LEFT_POINT", DEFAULT_LEFT_POINT), f"{prefix}_LEFT_POINT")
        right = _parse_point(os.getenv(f"{prefix}_RIGHT_POINT", DEFAULT_RIGHT_POINT), f"{prefix}_RIGHT_POINT")
        width = os.getenv(f"{prefix}_WIDTH", DEFAULT_WIDTH)
        height = os.getenv(f"{prefix}_HEIGHT", DEFAULT_HEIGHT)
        expected = None
        if width and height:
            expected = (_parse_size(width, f"{prefix}_WIDTH"), _parse_size(height, f"{prefix}_HEIGHT"))
        return image_path, left, right, expected

    def load(self, prop_asset_id: str = None) -> PropAsset:
        configured_id = os.getenv("HAT_ASSET_ID", DEFAULT_ASSET_ID)
        prop_asset_id = prop_asset_id or configured_id
        if prop_asset_id != configured_id:
            raise AssetConfigurationError(
                f"Unknown prop asset '{prop_asset_id}'; only '{configured_id}' is configured (HAT_ASSET_ID)")
        if prop_asset_id in self._cache:
            return self._cache[prop_asset_id]

        image_path, left, right, expected = self._config()
        try:
            pixels = self.image_repository.load_rgba(image_path)
        except FileNotFoundError as err:
            raise DetectorUnavailable(f"Prop asset '{prop_asset_id}' could not be loaded: {err}") from err

        if expected is not None:
            width, height = expected
            if pixels.shape[1] != width or pixels.shape[0] != height:
                raise AssetConfigurationError(
                    f"Prop '{prop_asset_id}' is {pixels.shape[1]}x{pixels.shape[0]}, "
                    f"anchors were measured on {width}x{height}")

        asset = PropAsset(asset_id=prop_asset_id, pixels=pixels, left_anchor=left, right_anchor=right)
        pixels.setflags(write=False)
        self._cache[prop_asset_id] = asset
        logger.info(f"Loaded prop '{prop_asset_id}' ({asset.width}x{asset.height}) from {image_path}")
        return asset
