"""
Error types raised by the annotation engine.

All errors inherit from AnnotationError for easy catching.
"""


class AnnotationError(Exception):
    """Base exception for all engine failures."""
    pass


class InputError(AnnotationError, ValueError):
    """Raised for malformed pointer, gesture or field data."""
    pass


class SessionError(AnnotationError):
    """Raised when an operation needs an open editor session."""
    pass


class ExportError(AnnotationError):
    """Base exception for a failed export attempt."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class DecodeError(ExportError):
    """Raised when the source image cannot be rasterized."""
    pass


class CapacityError(ExportError):
    """Raised when the source image is too large to process at all."""

    def __init__(self, width: int, height: int, reason: str):
        self.width = width
        self.height = height
        super().__init__(reason)
