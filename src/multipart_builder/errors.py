"""Exception hierarchy for multipart body encoding."""

from __future__ import annotations

__all__ = [
    "AttachmentOpenError",
    "BuildError",
    "EncoderStateError",
    "MultipartError",
    "PartWriteError",
    "SinkCloseError",
]


class MultipartError(RuntimeError):
    """Base class for all multipart encoding failures."""


class EncoderStateError(MultipartError):
    """Raised when ``build`` is invoked on a busy or already spent encoder."""


class BuildError(MultipartError):
    """Raised when writing a multipart body fails part-way through."""

    def __init__(self, message: str, *, part: str | None = None) -> None:
        super().__init__(message)
        self.part = part


class AttachmentOpenError(BuildError):
    """Raised when an attachment's byte source cannot be opened."""


class PartWriteError(BuildError):
    """Raised when framing or payload bytes cannot be copied to the sink."""


class SinkCloseError(BuildError):
    """Raised when the sink fails to close after an otherwise complete body."""
