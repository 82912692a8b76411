import math

import pytest

from hatter.models.errors import AssetConfigurationError, DegenerateLandmarks
from hatter.models.geometry import Point
from hatter.models.placement import AnchorPair
from hatter.services.transform_service import TransformService

PROP = AnchorPair(left=Point(240, 557), right=Point(855, 563))
FACE = AnchorPair(left=Point(100, 80), right=Point(220, 110))


def _rotate(point: Point, theta: float) -> Point:
    c, s = math.cos(theta), math.sin(theta)
    return Point(c * point.x - s * point.y, s * point.x + c * point.y)


def _rotate_pair(pair: AnchorPair, theta: float) -> AnchorPair:
    return AnchorPair(left=_rotate(pair.left, theta), right=_rotate(pair.right, theta))


def _same_angle(a: float, b: float) -> bool:
    return abs(math.remainder(a - b, 2 * math.pi)) < 1e-9


class TestSolve:
    def test_scale_is_ratio_of_anchor_distances(self):
        transform = TransformService.solve(FACE, PROP)
        expected = math.hypot(120, 30) / math.hypot(615, 6)
        assert transform.scale == pytest.approx(expected)

    def test_rotation_is_difference_of_angles(self):
        transform = TransformService.solve(FACE, PROP)
        expected = math.atan2(30, 120) - math.atan2(6, 615)
        assert transform.rotation == pytest.approx(expected)

    def test_pivot_and_translation_are_left_anchors(self):
        transform = TransformService.solve(FACE, PROP)
        assert transform.pivot == PROP.left
        assert transform.translation == FACE.left

    def test_rotation_is_normalized(self):
        # face pointing left, prop pointing right: half a turn either way
        face = AnchorPair(left=Point(200, 100), right=Point(100, 101))
        transform = TransformService.solve(face, PROP)
        assert -math.pi <= transform.rotation <= math.pi
        assert abs(transform.rotation) == pytest.approx(math.pi, abs=0.05)

    @pytest.mark.parametrize("theta", [0.3, 1.2, -2.0, 3.0, -3.1])
    def test_common_rotation_leaves_rotation_unchanged(self, theta):
        base = TransformService.solve(FACE, PROP)
        rotated = TransformService.solve(_rotate_pair(FACE, theta), _rotate_pair(PROP, theta))

        assert _same_angle(rotated.rotation, base.rotation)
        assert rotated.scale == pytest.approx(base.scale)
        assert rotated.pivot.x == pytest.approx(_rotate(PROP.left, theta).x)
        assert rotated.pivot.y == pytest.approx(_rotate(PROP.left, theta).y)
        assert rotated.translation.x == pytest.approx(_rotate(FACE.left, theta).x)
        assert rotated.translation.y == pytest.approx(_rotate(FACE.left, theta).y)

    def test_matrix_maps_prop_anchors_onto_face_anchors(self):
        transform = TransformService.solve(FACE, PROP)
        left = transform.apply(PROP.left)
        right = transform.apply(PROP.right)
        assert left.x == pytest.approx(FACE.left.x)
        assert left.y == pytest.approx(FACE.left.y)
        # two-point similarity: the right anchor lands too
        assert right.x == pytest.approx(FACE.right.x)
        assert right.y == pytest.approx(FACE.right.y)

    def test_matrix_shape(self):
        assert TransformService.solve(FACE, PROP).matrix().shape == (2, 3)

    def test_mirrored_face_anchors_flip_the_prop(self):
        mirrored = AnchorPair(left=FACE.right, right=FACE.left)
        base = TransformService.solve(FACE, PROP)
        flipped = TransformService.solve(mirrored, PROP)
        assert _same_angle(flipped.rotation, base.rotation + math.pi)


class TestSolveErrors:
    def test_coincident_prop_anchors_are_a_configuration_error(self):
        prop = AnchorPair(left=Point(5, 5), right=Point(5, 5))
        with pytest.raises(AssetConfigurationError):
            TransformService.solve(FACE, prop)

    def test_coincident_face_anchors_are_degenerate(self):
        face = AnchorPair(left=Point(5, 5), right=Point(5, 5))
        with pytest.raises(DegenerateLandmarks):
            TransformService.solve(face, PROP)
