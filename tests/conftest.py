from __future__ import annotations

import pytest

from fakes import StubAssetLoader, StubDetector, make_face, make_image, make_prop
from hatter.pipeline.hat_pipeline import HatPipeline
from hatter.services.face_detection_service import FaceDetectionService


@pytest.fixture
def face():
    return make_face()


@pytest.fixture
def image():
    return make_image()


@pytest.fixture
def prop():
    return make_prop()


@pytest.fixture
def make_pipeline():
    """Factory for pipelines wired to stub collaborators (no models, no disk)."""
    def _make(detector=None, asset_loader=None) -> HatPipeline:
        detector = detector if detector is not None else StubDetector(all_faces=[make_face()])
        return HatPipeline(
            detection_service=FaceDetectionService(detector=detector, min_confidence=0.5),
            asset_loader=asset_loader or StubAssetLoader(),
        )
    return _make
