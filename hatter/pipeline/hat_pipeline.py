"""
Hat pipeline state machine.

IDLE -> (load_image) -> DETECTING -> READY | ERROR, with reset() back to IDLE.
Assets and the detector are prepared once (AWAITING_ASSETS) before the first
image. Each image session carries a generation number so that a detection
result arriving after a reset or a newer image is dropped instead of applied.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np

from ..models.errors import (
    AssetConfigurationError,
    DetectorUnavailable,
    HatterError,
    PipelineStateError,
    RenderError,
)
from ..models.face import DetectedFace
from ..models.image import Image
from ..models.prop_asset import PropAsset
from ..models.scene import Scene
from ..repositories.prop_asset_repository import PropAssetRepository
from ..services.face_detection_service import FaceDetectionService
from ..services.render_service import RenderService
from ..services.scene_service import SceneService

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    AWAITING_ASSETS = "awaiting_assets"
    DETECTING = "detecting"
    READY = "ready"
    ERROR = "error"


@dataclass
class PipelineSession:
    """State owned by one image: released on reset or when the next image loads."""
    generation: int
    image: Image
    faces: List[DetectedFace] | None = None
    scene: Scene | None = None
    error: Exception | None = None


class HatPipeline:
    def __init__(
        self,
        detection_service: FaceDetectionService | None = None,
        scene_service: SceneService | None = None,
        render_service: RenderService | None = None,
        asset_loader: PropAssetRepository | None = None,
        prop_asset_id: str | None = None,
    ):
        self.detection_service = detection_service or FaceDetectionService()
        self.scene_service = scene_service or SceneService()
        self.render_service = render_service or RenderService()
        self.asset_loader = asset_loader or PropAssetRepository()
        self.prop_asset_id = prop_asset_id

        self.state = PipelineState.IDLE
        self.prop: PropAsset | None = None
        self.fatal_error: HatterError | None = None
        self.session: PipelineSession | None = None
        self._generation = 0

    # ─── lifecycle ────────────────────────────────────────────────────
    @property
    def assets_ready(self) -> bool:
        return self.prop is not None and self.fatal_error is None

    @property
    def generation(self) -> int:
        return self._generation

    def _transition(self, new_state: PipelineState) -> None:
        logger.debug(f"Pipeline state {self.state.value} -> {new_state.value}")
        self.state = new_state

    def prepare(self) -> None:
        """
        Load the prop asset and warm up the detector. Failures here are fatal
        for the lifetime of this pipeline; reset() does not clear them.
        """
        if self.assets_ready:
            return
        if self.fatal_error is not None:
            raise self.fatal_error

        self._transition(PipelineState.AWAITING_ASSETS)
        try:
            self.prop = self.asset_loader.load(self.prop_asset_id)
            self.detection_service.warm_up()
        except (AssetConfigurationError, DetectorUnavailable) as err:
            self.prop = None
            self.fatal_error = err
            self._transition(PipelineState.ERROR)
            logger.error(f"Pipeline initialisation failed: {err}")
            raise
        self._transition(PipelineState.IDLE)

    def reset(self) -> None:
        """Discard the current image and scene; any in-flight result becomes stale."""
        self._generation += 1
        self.session = None
        if self.fatal_error is None:
            self._transition(PipelineState.IDLE)

    # ─── session steps ────────────────────────────────────────────────
    def load_image(self, image: Image) -> int:
        """Start a new session for *image*; returns its generation number."""
        if not self.assets_ready:
            raise PipelineStateError("Assets are not loaded; call prepare() first")
        if image.width < 1 or image.height < 1:
            raise ValueError(f"Image must be at least 1x1, got {image.width}x{image.height}")

        self._generation += 1
        self.session = PipelineSession(generation=self._generation, image=image)
        self._transition(PipelineState.DETECTING)
        logger.info(f"Session {self._generation}: detecting faces in {image.width}x{image.height} image")
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return self.session is not None and self.session.generation == generation

    def complete_detection(self, generation: int, faces: List[DetectedFace]) -> Optional[Scene]:
        """
        Apply a detection result: build the scene (with debug layer) and move
        to READY. Returns None when the result belongs to a stale session.
        """
        if not self._is_current(generation):
            logger.info(f"Discarding detection result for stale session {generation}")
            return None

        session = self.session
        try:
            scene = self.scene_service.build(session.image, faces, self.prop)
            scene = self.scene_service.with_debug_layer(scene, faces)
        except HatterError as err:
            self.fail_session(generation, err)
            raise

        session.faces = list(faces)
        session.scene = scene
        self._transition(PipelineState.READY)
        logger.info(f"Session {generation}: scene ready with {len(scene.placements)} placement(s)")
        return scene

    def fail_session(self, generation: int, error: Exception) -> bool:
        """Record a failure for *generation*; returns False when it was stale."""
        if not self._is_current(generation):
            logger.info(f"Discarding failure for stale session {generation}: {error}")
            return False
        self.session.error = error
        self._transition(PipelineState.ERROR)
        logger.warning(f"Session {generation} failed: {type(error).__name__}: {error}")
        return True

    def process(self, image: Image) -> Scene:
        """Run a whole session synchronously. Errors leave the pipeline in ERROR and are re-raised."""
        generation = self.load_image(image)
        try:
            faces = self.detection_service.detect(image)
        except Exception as err:
            self.fail_session(generation, err)
            raise
        return self.complete_detection(generation, faces)

    async def process_async(self, image: Image) -> Optional[Scene]:
        """
        Cooperative variant: detection runs in a worker thread while the event
        loop stays free. If the session was reset or superseded in the
        meantime, the result is discarded and None is returned.
        """
        generation = self.load_image(image)
        try:
            faces = await asyncio.to_thread(self.detection_service.detect, image)
        except Exception as err:
            if self.fail_session(generation, err):
                raise
            return None
        return self.complete_detection(generation, faces)

    # ─── output ───────────────────────────────────────────────────────
    @property
    def scene(self) -> Scene | None:
        return self.session.scene if self.session else None

    @property
    def error(self) -> Exception | None:
        if self.fatal_error is not None:
            return self.fatal_error
        return self.session.error if self.session else None

    def export(self, debug_visible: bool = False) -> np.ndarray:
        """Flatten the ready scene. Does not change state unless compositing fails."""
        if self.state is not PipelineState.READY or self.scene is None:
            raise PipelineStateError(f"Nothing to export in state '{self.state.value}'")
        try:
            return self.render_service.flatten(self.scene, debug_visible=debug_visible)
        except RenderError as err:
            self.fail_session(self.session.generation, err)
            raise
