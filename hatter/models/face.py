from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

from .geometry import BoundingBox, Point

LANDMARK_COUNT = 68  # iBUG / dlib 68-point scheme


class CheekLandmark(IntEnum):
    """Jawline points used to anchor the hat brim (0 and 16 are outermost)."""
    LEFT_OUTER = 0
    LEFT_INNER = 1
    RIGHT_INNER = 15
    RIGHT_OUTER = 16


@dataclass(frozen=True)
class DetectedFace:
    bbox: BoundingBox                        # (x, y, width, height)
    landmarks: Tuple[Point, ...]             # 68 points, fixed index order
    det_score: float | None = None           # detection confidence

    def landmark(self, role: CheekLandmark) -> Point:
        return self.landmarks[role]

    @classmethod
    def from_insightface(cls, raw_face) -> "DetectedFace":
        if getattr(raw_face, "landmark_3d_68", None) is None:
            raise ValueError("InsightFace result carries no 68-point landmarks; "
                             "is the landmark_3d_68 module loaded?")
        x1, y1, x2, y2 = (float(v) for v in raw_face.bbox[:4])
        points = tuple(Point(float(p[0]), float(p[1])) for p in raw_face.landmark_3d_68)
        if len(points) != LANDMARK_COUNT:
            raise ValueError(f"Expected {LANDMARK_COUNT} landmarks, got {len(points)}")
        return cls(
            bbox=BoundingBox.from_corners(x1, y1, x2, y2),
            landmarks=points,
            det_score=float(raw_face.det_score),
        )
