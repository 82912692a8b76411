from ..models.face_engine import FaceEngine
from ..models.face import DetectedFace
from ..models.image import Image
from ..models.errors import DetectorUnavailable
from insightface.app.common import Face
from typing import List, Optional
import numpy as np
import threading
import logging

logger = logging.getLogger(__name__)


class FaceEngineRepository:
    """
    Thin wrapper around FaceEngine exposing the two detection operations
    the orchestrator needs (FaceDetector protocol).
    """

    # The detector keeps its threshold as instance state; threshold + inference
    # must happen atomically when several sessions share the singleton.
    _lock = threading.Lock()

    def __init__(self):
        self.engine = None

    def warm_up(self) -> None:
        """Load the singleton model now instead of on the first image."""
        self._get_engine()

    def _get_engine(self) -> FaceEngine:
        if self.engine is None:
            try:
                self.engine = FaceEngine()  # Singleton is handled inside
            except (OSError, RuntimeError, ValueError, AssertionError) as err:
                raise DetectorUnavailable(f"Face engine failed to load: {err}") from err
        return self.engine

    def infer_faces(self, pixels_rgb: np.ndarray, min_confidence: float) -> List[Face]:
        engine = self._get_engine()
        img_bgr = np.ascontiguousarray(pixels_rgb[:, :, ::-1])
        det_model = engine.app.det_model
        with self._lock:
            previous = det_model.det_thresh
            det_model.det_thresh = min_confidence
            try:
                return engine.app.get(img_bgr)
            finally:
                det_model.det_thresh = previous

    def detect_all(self, image: Image, min_confidence: float) -> List[DetectedFace]:
        raw_faces = self.infer_faces(image.pixels, min_confidence)
        logger.debug(f"detect_all(min_confidence={min_confidence}) -> {len(raw_faces)} raw faces")
        return [DetectedFace.from_insightface(face) for face in raw_faces]

    def infer_best_face(self, pixels_rgb: np.ndarray, min_confidence: float,
                        max_results: int = 1) -> Optional[Face]:
        """
        Detector pass only, then 68-point landmarks for the highest-scoring box alone.
        """
        engine = self._get_engine()
        img_bgr = np.ascontiguousarray(pixels_rgb[:, :, ::-1])
        det_model = engine.app.det_model
        with self._lock:
            previous = det_model.det_thresh
            det_model.det_thresh = min_confidence
            try:
                bboxes, kpss = det_model.detect(img_bgr, max_num=0, metric="default")
            finally:
                det_model.det_thresh = previous

        if bboxes.shape[0] == 0:
            return None
        ranked = np.argsort(-bboxes[:, 4])[:max_results]
        best = int(ranked[0])
        face = Face(bbox=bboxes[best, 0:4],
                    kps=kpss[best] if kpss is not None else None,
                    det_score=bboxes[best, 4])
        engine.app.models["landmark_3d_68"].get(img_bgr, face)
        logger.debug(f"detect_best(min_confidence={min_confidence}) picked score {float(face.det_score):.4f} "
                     f"out of {bboxes.shape[0]} boxes")
        return face

    def detect_best(self, image: Image, min_confidence: float,
                    max_results: int = 1) -> Optional[DetectedFace]:
        face = self.infer_best_face(image.pixels, min_confidence, max_results)
        return DetectedFace.from_insightface(face) if face is not None else None
