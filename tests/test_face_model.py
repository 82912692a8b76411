from types import SimpleNamespace

import numpy as np
import pytest

from hatter.models.face import CheekLandmark, DetectedFace, LANDMARK_COUNT
from hatter.models.geometry import BoundingBox, Point


def _raw_face(landmarks=None):
    if landmarks is None:
        landmarks = np.column_stack([np.arange(68), np.arange(68) * 2, np.zeros(68)]).astype(np.float32)
    return SimpleNamespace(
        bbox=np.array([10.0, 20.0, 110.0, 140.0], dtype=np.float32),
        det_score=np.float32(0.87),
        landmark_3d_68=landmarks,
    )


def test_from_insightface_converts_box_and_landmarks():
    face = DetectedFace.from_insightface(_raw_face())
    assert face.bbox == BoundingBox(10.0, 20.0, 100.0, 120.0)
    assert len(face.landmarks) == LANDMARK_COUNT
    assert face.landmark(CheekLandmark.RIGHT_OUTER) == Point(16.0, 32.0)
    assert face.det_score == pytest.approx(0.87)


def test_from_insightface_requires_68_point_landmarks():
    raw = _raw_face()
    raw.landmark_3d_68 = None
    with pytest.raises(ValueError):
        DetectedFace.from_insightface(raw)


def test_from_insightface_rejects_other_landmark_counts():
    with pytest.raises(ValueError):
        DetectedFace.from_insightface(_raw_face(np.zeros((5, 3))))


def test_cheek_roles_follow_68_point_scheme():
    assert [int(role) for role in CheekLandmark] == [0, 1, 15, 16]
