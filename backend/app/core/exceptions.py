"""Error types raised by the gallery services and mapped to HTTP responses in app.main."""
from typing import List, Optional


class GalleryError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(GalleryError):
    """Missing or invalid bearer credential."""

    status_code = 401


class ValidationError(GalleryError):
    """Missing or malformed request input."""

    status_code = 400


class NotFoundError(GalleryError):
    """Resource absent or not owned by the caller."""

    status_code = 404


class UpstreamError(GalleryError):
    """An external collaborator (store, database, auth provider, vision model) failed."""

    status_code = 502


class AnnotationParseError(ValueError):
    """Vision-model output did not match the TAGS/DESCRIPTION/COLORS grammar."""

    def __init__(self, problems: List[str]) -> None:
        super().__init__("Malformed annotation response: " + "; ".join(problems))
        self.problems = problems


class InvalidStatusTransition(ValueError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Invalid status transition: {current} -> {target}")
        self.current = current
        self.target = target
