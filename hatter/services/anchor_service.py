from ..models.errors import DegenerateLandmarks
from ..models.face import CheekLandmark, DetectedFace
from ..models.geometry import Point
from ..models.placement import AnchorPair

# How far past the outer cheek point the brim anchor sits, in cheek-segment lengths.
EXTRAPOLATION_FACTOR = 1.5


class AnchorService:
    """
    Derives where the hat brim rests from the outer jawline landmarks.
    Pure: no state, no I/O.
    """

    @staticmethod
    def _extrapolate(outer: Point, inner: Point, side: str) -> Point:
        if not (outer.is_finite() and inner.is_finite()):
            raise DegenerateLandmarks(f"Non-finite {side} cheek landmark")
        direction = outer - inner
        if direction.length() == 0:
            raise DegenerateLandmarks(
                f"{side} cheek landmarks coincide at {outer.as_tuple()}; brim direction undefined")
        return outer + direction * EXTRAPOLATION_FACTOR

    def anchors(self, face: DetectedFace) -> AnchorPair:
        """
        Extend the segment inner->outer cheek point by 1.5x its own length past
        the outer point, on each side of the face.

        Raises:
            DegenerateLandmarks: for coincident, non-finite or missing cheek points.
        """
        if len(face.landmarks) <= CheekLandmark.RIGHT_OUTER:
            raise DegenerateLandmarks(
                f"Need at least {CheekLandmark.RIGHT_OUTER + 1} landmarks, got {len(face.landmarks)}")

        left = self._extrapolate(face.landmark(CheekLandmark.LEFT_OUTER),
                                 face.landmark(CheekLandmark.LEFT_INNER), "left")
        right = self._extrapolate(face.landmark(CheekLandmark.RIGHT_OUTER),
                                  face.landmark(CheekLandmark.RIGHT_INNER), "right")
        return AnchorPair(left=left, right=right)
