from __future__ import annotations
from dataclasses import replace
from typing import List, Sequence
import logging

from ..models.face import DetectedFace
from ..models.image import Image
from ..models.placement import AnchorPair
from ..models.prop_asset import PropAsset
from ..models.scene import AnchorMarker, DebugLayer, LandmarkMarker, Placement, Scene
from .anchor_service import AnchorService
from .transform_service import TransformService

logger = logging.getLogger(__name__)


class SceneService:
    """
    Assembles placements (and optionally the debug layer) for one image.
    No rendering here: a Scene is a description, RenderService draws it.
    """

    def __init__(self, anchor_service: AnchorService | None = None,
                 transform_service: TransformService | None = None):
        self.anchor_service = anchor_service or AnchorService()
        self.transform_service = transform_service or TransformService()

    @staticmethod
    def prop_anchors(prop: PropAsset) -> AnchorPair:
        return AnchorPair(left=prop.left_anchor, right=prop.right_anchor)

    def build(self, image: Image, faces: Sequence[DetectedFace], prop: PropAsset) -> Scene:
        """
        One placement per face, in detection order. Any per-face failure
        (DegenerateLandmarks, ...) aborts the whole build; there are no
        partially hatted scenes.
        """
        prop_anchors = self.prop_anchors(prop)
        placements: List[Placement] = []
        for face_index, face in enumerate(faces):
            anchors = self.anchor_service.anchors(face)
            transform = self.transform_service.solve(anchors, prop_anchors)
            logger.debug(f"Face {face_index}: scale={transform.scale:.4f} rotation={transform.rotation:.4f}")
            placements.append(Placement(face_index=face_index, anchors=anchors, transform=transform))
        return Scene(image=image, prop=prop, placements=tuple(placements))

    def with_debug_layer(self, scene: Scene, faces: Sequence[DetectedFace]) -> Scene:
        """
        Return a copy of *scene* carrying bounding boxes, indexed landmarks and
        labelled anchors for every face. Placements are left untouched.
        """
        boxes = []
        landmarks = []
        anchor_markers = []
        for face_index, face in enumerate(faces):
            boxes.append(face.bbox)
            landmarks.extend(LandmarkMarker(index=i, point=p) for i, p in enumerate(face.landmarks))
            anchors = self.anchor_service.anchors(face)
            anchor_markers.append(AnchorMarker(label=f"L{face_index}", point=anchors.left))
            anchor_markers.append(AnchorMarker(label=f"R{face_index}", point=anchors.right))

        layer = DebugLayer(boxes=tuple(boxes), landmarks=tuple(landmarks), anchors=tuple(anchor_markers))
        return replace(scene, debug_layer=layer)
