from typing import Optional


class GenerationError(Exception):
    """Base class for failures talking to the generative model."""


class UpstreamError(GenerationError):
    """Transport, quota or API-level failure."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(GenerationError):
    """The model answered, but not in the shape the schema asked for."""


class ImageResolutionFailure(GenerationError):
    """No image payload came back for a single image prompt."""


class InvalidTransition(Exception):
    """A wizard transition was requested from a step that does not allow it."""
