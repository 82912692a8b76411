class HatterError(Exception):
    """Base class for every error raised by the hatting pipeline."""


class NoFaceFound(HatterError):
    """Neither the multi-face pass nor the best-candidate fallback found a face."""


class DegenerateLandmarks(HatterError):
    """A landmark pair needed for anchoring is coincident, non-finite or missing."""


class AssetConfigurationError(HatterError):
    """The prop asset's reference anchors or dimensions are unusable."""


class DetectorUnavailable(HatterError):
    """The face engine or the prop raster could not be loaded."""


class RenderError(HatterError):
    """Compositing the scene into a raster failed."""


class PipelineStateError(HatterError):
    """An operation was requested in a pipeline state that does not allow it."""
