from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple

from .geometry import BoundingBox, Point
from .image import Image
from .placement import AnchorPair, PlacementTransform
from .prop_asset import PropAsset


@dataclass(frozen=True)
class Placement:
    """One hat on one face."""
    face_index: int
    anchors: AnchorPair
    transform: PlacementTransform


@dataclass(frozen=True)
class LandmarkMarker:
    index: int
    point: Point


@dataclass(frozen=True)
class AnchorMarker:
    label: str          # "L0", "R0", "L1", ...
    point: Point


@dataclass(frozen=True)
class DebugLayer:
    boxes: Tuple[BoundingBox, ...] = ()
    landmarks: Tuple[LandmarkMarker, ...] = ()
    anchors: Tuple[AnchorMarker, ...] = ()


@dataclass(frozen=True, eq=False)
class Scene:
    """
    Everything needed to render one session's output.
    Placements keep detection order; later entries are drawn on top.
    """
    image: Image
    prop: PropAsset
    placements: Tuple[Placement, ...] = field(default_factory=tuple)
    debug_layer: DebugLayer | None = None
