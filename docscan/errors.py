"""Exception types raised by the preprocessing and recognition pipeline."""


class DocscanError(Exception):
    """Base class for all pipeline errors."""


class DecodeError(DocscanError):
    """Image bytes are present but cannot be parsed as an image."""


class SurfaceUnavailable(DocscanError):
    """The runtime has no raster surface to render or encode images."""


class EngineUnavailable(DocscanError):
    """The recognition engine cannot be located or bound."""


class RecognitionError(DocscanError):
    """The recognition engine failed while recognizing an image."""
