from __future__ import annotations
from typing import List
from dotenv import load_dotenv
import math
import os
import logging

from ..models.detector import FaceDetector
from ..models.errors import NoFaceFound
from ..models.face import DetectedFace
from ..models.image import Image

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Smallest positive float: accept whatever the detector ranks best, however weak.
LOWEST_CONFIDENCE = math.ulp(0.0)


class FaceDetectionService:
    """
    Detection orchestrator.

    Multi-face detection at a moderate threshold first; if that finds nothing,
    one best-effort single-face pass at the lowest possible threshold. Partially
    occluded or low-quality portraits still get a hat that way.
    """

    def __init__(self, detector: FaceDetector | None = None, min_confidence: float = None):
        if detector is None:
            from ..repositories.face_engine_repository import FaceEngineRepository
            detector = FaceEngineRepository()
        self.detector = detector
        if min_confidence is None:
            min_confidence = float(os.getenv("DETECTION_MIN_CONFIDENCE", "0.5"))
        self.min_confidence = min_confidence

    def warm_up(self) -> None:
        warm_up = getattr(self.detector, "warm_up", None)
        if warm_up is not None:
            warm_up()

    def detect(self, image: Image) -> List[DetectedFace]:
        """
        Returns the faces in detection order.

        Raises:
            NoFaceFound: if neither pass produced a face.
        """
        faces = list(self.detector.detect_all(image, self.min_confidence))
        if faces:
            logger.info(f"Detected {len(faces)} face(s) at min_confidence={self.min_confidence}")
            return faces

        logger.info("No faces in multi-face pass, falling back to best single candidate")
        best = self.detector.detect_best(image, LOWEST_CONFIDENCE, max_results=1)
        if best is None:
            raise NoFaceFound("No faces detected")

        logger.info(f"Fallback found one face (score={best.det_score})")
        return [best]
