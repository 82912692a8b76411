from __future__ import annotations
from insightface.app import FaceAnalysis
import torch
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class FaceEngine:
    """
    Singleton wrapper around InsightFace's FaceAnalysis (SCRFD detector + 68-point landmarks).

    Loads the model once per process; every pipeline session shares it read-only.
    """

    _instance: FaceEngine | None = None  # Class-level cache for singleton

    def __new__(cls, *args, **kwargs):
        """
        Ensure model is loaded only once (Singleton pattern).

        Args:
            model_name (str, optional): Name of the InsightFace model pack to load.
            ctx_id (int, optional): Device index. -1 = CPU, 0+ = GPU index.
            det_size (int, optional): Square detector input size in pixels.
        """
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._init_engine(*args, **kwargs)
            cls._instance = instance
        return cls._instance

    def _init_engine(self, model_name: str = None, ctx_id: int = None, det_size: int = None):
        """
        Load and prepare the InsightFace model pack on first instantiation.

        Only the `detection` and `landmark_3d_68` modules are loaded; recognition,
        gender/age and the 106-point model are not needed for placing props.
        """
        # Load from environment variables if not provided
        if model_name is None:
            model_name = os.getenv("FACE_ENGINE_MODEL", "buffalo_l")
        if ctx_id is None:
            ctx_id = int(os.getenv("FACE_ENGINE_CTX_ID", "0"))
        if det_size is None:
            det_size = int(os.getenv("FACE_ENGINE_DET_SIZE", "640"))

        # ─── DEVICE SELECTION ────────────────────────────────────────────────
        # Priority: CUDA -> CPU
        if torch.cuda.is_available():
            device_name = "CUDA"
        else:
            ctx_id = -1
            device_name = "CPU"
        logger.info(f"InsightFace using: {device_name} (ctx_id={ctx_id}) | model={model_name} | det_size={det_size}")

        self.model_name = model_name
        self.app = FaceAnalysis(name=model_name, allowed_modules=["detection", "landmark_3d_68"])
        self.app.prepare(ctx_id=ctx_id, det_size=(det_size, det_size))
