from __future__ import annotations
from dataclasses import dataclass
import math
import numpy as np

from .geometry import Point


@dataclass(frozen=True)
class AnchorPair:
    """Where the hat brim should rest. left.x < right.x is typical, not enforced."""
    left: Point
    right: Point


@dataclass(frozen=True)
class PlacementTransform:
    """
    Uniform scale + rigid rotation about `pivot` (asset space), after which
    the pivot is moved onto `translation` (image space).
    """
    scale: float
    rotation: float     # radians, in [-pi, pi]
    pivot: Point
    translation: Point

    def matrix(self) -> np.ndarray:
        """
        2x3 affine matrix mapping asset pixels into image pixels, in the form
        cv2.warpAffine expects: T(translation) . R(rotation) . S(scale) . T(-pivot).
        """
        cos_r = math.cos(self.rotation) * self.scale
        sin_r = math.sin(self.rotation) * self.scale
        tx = self.translation.x - (cos_r * self.pivot.x - sin_r * self.pivot.y)
        ty = self.translation.y - (sin_r * self.pivot.x + cos_r * self.pivot.y)
        return np.array([[cos_r, -sin_r, tx],
                         [sin_r, cos_r, ty]], dtype=np.float64)

    def apply(self, point: Point) -> Point:
        """Map an asset-space point into image space."""
        m = self.matrix()
        return Point(
            float(m[0, 0] * point.x + m[0, 1] * point.y + m[0, 2]),
            float(m[1, 0] * point.x + m[1, 1] * point.y + m[1, 2]),
        )
