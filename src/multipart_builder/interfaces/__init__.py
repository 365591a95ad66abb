"""Typed interface definitions for encoder collaborators."""

from __future__ import annotations

from .sink import (
    AbortableSink,
    AttachmentSource,
    BodySink,
    ByteReader,
)

__all__ = [
    "AbortableSink",
    "AttachmentSource",
    "BodySink",
    "ByteReader",
]
