from __future__ import annotations
from dataclasses import dataclass
import numpy as np

from .errors import AssetConfigurationError
from .geometry import Point


@dataclass(frozen=True, eq=False)
class PropAsset:
    """
    The overlay raster plus its two reference anchors (brim left/right),
    expressed in the asset's own pixel space with (0, 0) at the top left.

    Validated on construction: a PropAsset that exists is always placeable.
    """
    asset_id: str
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.
    left_anchor: Point
    right_anchor: Point

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise AssetConfigurationError(
                f"Prop '{self.asset_id}' must be RGBA, got shape {self.pixels.shape}")
        if not (self.left_anchor.is_finite() and self.right_anchor.is_finite()):
            raise AssetConfigurationError(f"Prop '{self.asset_id}' has non-finite anchors")
        if (self.right_anchor - self.left_anchor).length() == 0:
            raise AssetConfigurationError(
                f"Prop '{self.asset_id}' reference anchors coincide at {self.left_anchor.as_tuple()}")
        for anchor in (self.left_anchor, self.right_anchor):
            if not (0 <= anchor.x <= self.width and 0 <= anchor.y <= self.height):
                raise AssetConfigurationError(
                    f"Prop '{self.asset_id}' anchor {anchor.as_tuple()} lies outside "
                    f"its {self.width}x{self.height} raster")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])
