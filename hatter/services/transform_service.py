import math

from ..models.errors import AssetConfigurationError, DegenerateLandmarks
from ..models.placement import AnchorPair, PlacementTransform


def _normalize_angle(angle: float) -> float:
    """Wrap into [-pi, pi]; same rotation, stable under atan2 wrap-around."""
    return math.remainder(angle, 2 * math.pi)


class TransformService:
    """
    Solves the uniform-scale + rotation + translation that puts the prop's
    reference anchors onto a face's anchors.
    """

    @staticmethod
    def solve(face_anchors: AnchorPair, prop_anchors: AnchorPair) -> PlacementTransform:
        """
        Left anchors align exactly; right anchors align only as far as a
        rigid scale + rotation allows (no shear, no independent x/y scale).

        Args:
            face_anchors (AnchorPair): Brim anchors in image space.
            prop_anchors (AnchorPair): Reference anchors in asset space.

        Returns:
            PlacementTransform: pivot on the prop's left anchor, translated to the face's left anchor.
        """
        face_vector = face_anchors.right - face_anchors.left
        prop_vector = prop_anchors.right - prop_anchors.left

        prop_distance = prop_vector.length()
        if prop_distance == 0:
            raise AssetConfigurationError("Prop reference anchors coincide")
        face_distance = face_vector.length()
        if face_distance == 0:
            raise DegenerateLandmarks("Face anchors coincide; hat would collapse to zero size")

        return PlacementTransform(
            scale=face_distance / prop_distance,
            rotation=_normalize_angle(face_vector.angle() - prop_vector.angle()),
            pivot=prop_anchors.left,
            translation=face_anchors.left,
        )
