"""Streaming multipart/form-data encoder with pluggable output sinks."""

from __future__ import annotations

from .attachments import Attachment, CustomAttachment, PathAttachment
from .encoder import MultipartEncoder, generate_boundary, guess_content_type
from .errors import (
    AttachmentOpenError,
    BuildError,
    EncoderStateError,
    MultipartError,
    PartWriteError,
    SinkCloseError,
)
from .interfaces import AbortableSink, AttachmentSource, BodySink, ByteReader
from .sinks import BufferSink, HTTPConnectionSink, StreamSink

__version__ = "0.1.0"

__all__ = [
    "AbortableSink",
    "Attachment",
    "AttachmentOpenError",
    "AttachmentSource",
    "BodySink",
    "BufferSink",
    "BuildError",
    "ByteReader",
    "CustomAttachment",
    "EncoderStateError",
    "HTTPConnectionSink",
    "MultipartEncoder",
    "MultipartError",
    "PartWriteError",
    "PathAttachment",
    "SinkCloseError",
    "StreamSink",
    "generate_boundary",
    "guess_content_type",
]
