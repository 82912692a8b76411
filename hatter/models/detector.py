from __future__ import annotations
from typing import List, Optional, Protocol, runtime_checkable

from .face import DetectedFace
from .image import Image


@runtime_checkable
class FaceDetector(Protocol):
    """
    Capability the detection orchestrator depends on.
    Implementations accept RGB Images and return faces with 68 landmarks.
    """

    def detect_all(self, image: Image, min_confidence: float) -> List[DetectedFace]:
        ...

    def detect_best(self, image: Image, min_confidence: float,
                    max_results: int = 1) -> Optional[DetectedFace]:
        ...
