from __future__ import annotations
from typing import Tuple
import numpy as np
import cv2
import logging

from ..models.errors import RenderError
from ..models.geometry import Point
from ..models.scene import DebugLayer, Scene

logger = logging.getLogger(__name__)

# RGB colours (pixels are RGB everywhere in this package).
BOX_COLOR = (255, 0, 0)
LANDMARK_COLOR = (0, 255, 0)
LANDMARK_LABEL_COLOR = (255, 255, 0)
ANCHOR_FILL_COLOR = (0, 255, 255)
ANCHOR_EDGE_COLOR = (0, 0, 255)
ANCHOR_LABEL_COLOR = (255, 255, 255)
FONT = cv2.FONT_HERSHEY_SIMPLEX


def _px(point: Point, dx: float = 0.0, dy: float = 0.0) -> Tuple[int, int]:
    return int(round(point.x + dx)), int(round(point.y + dy))


class RenderService:
    """
    Compositor: turns a Scene into a single RGB raster.
    Stateless; debug visibility is an argument, never a toggled flag.
    """

    @staticmethod
    def _premultiply(rgba: np.ndarray) -> np.ndarray:
        """uint8 RGBA -> float32 RGBA with colour already scaled by alpha."""
        premultiplied = rgba.astype(np.float32)
        premultiplied[:, :, :3] *= premultiplied[:, :, 3:4] / 255.0
        return premultiplied

    @staticmethod
    def _composite(canvas: np.ndarray, premultiplied: np.ndarray) -> None:
        """Premultiplied alpha-over (same size as canvas) onto the float canvas, in place."""
        alpha = premultiplied[:, :, 3:4] / 255.0
        canvas *= 1.0 - alpha
        canvas += premultiplied[:, :, :3]

    @staticmethod
    def _draw_debug(pixels: np.ndarray, layer: DebugLayer) -> None:
        for box in layer.boxes:
            top_left = (int(round(box.x)), int(round(box.y)))
            bottom_right = (int(round(box.x + box.width)), int(round(box.y + box.height)))
            cv2.rectangle(pixels, top_left, bottom_right, BOX_COLOR, 3)

        for marker in layer.landmarks:
            cv2.circle(pixels, _px(marker.point), 3, LANDMARK_COLOR, -1)
            cv2.putText(pixels, str(marker.index), _px(marker.point, 4, -4),
                        FONT, 0.3, LANDMARK_LABEL_COLOR, 1, cv2.LINE_AA)

        for marker in layer.anchors:
            cv2.circle(pixels, _px(marker.point), 5, ANCHOR_FILL_COLOR, -1)
            cv2.circle(pixels, _px(marker.point), 5, ANCHOR_EDGE_COLOR, 2)
            cv2.putText(pixels, marker.label, _px(marker.point, 8, 4),
                        FONT, 0.4, ANCHOR_LABEL_COLOR, 1, cv2.LINE_AA)

    def render_placements(self, scene: Scene) -> np.ndarray:
        """Base image plus every prop, later placements on top."""
        height, width = scene.image.pixels.shape[:2]
        canvas = scene.image.pixels[:, :, :3].astype(np.float32)
        prop = self._premultiply(scene.prop.pixels)
        for placement in scene.placements:
            warped = cv2.warpAffine(
                prop,
                placement.transform.matrix(),
                (width, height),
                flags=cv2.INTER_LINEAR,
                borderMode=cv2.BORDER_CONSTANT,
                borderValue=(0, 0, 0, 0),
            )
            self._composite(canvas, warped)
        return np.clip(np.rint(canvas), 0, 255).astype(np.uint8)

    def flatten(self, scene: Scene, debug_visible: bool = False) -> np.ndarray:
        """
        Args:
            scene (Scene): Scene to draw.
            debug_visible (bool): Draw the debug layer (if the scene has one) last.

        Returns:
            np.ndarray: (H, W, 3) uint8 RGB, same size as the scene's base image.

        Raises:
            RenderError: if OpenCV cannot composite the scene.
        """
        try:
            pixels = self.render_placements(scene)
            if debug_visible and scene.debug_layer is not None:
                self._draw_debug(pixels, scene.debug_layer)
        except cv2.error as err:
            raise RenderError(f"Compositing failed: {err}") from err
        return pixels
