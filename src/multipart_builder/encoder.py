"""
Streaming ``multipart/form-data`` encoder.

`MultipartEncoder` collects header lines, text fields and attachments, then
writes them to a `BodySink` one part at a time on a single ``build`` call.
Attachment payloads are copied in fixed-size chunks so the full body is never
held in memory.

Encoders are single-use and must not be shared between threads while a build
is running. Cancellation and timeouts belong to the sink's transport.
"""

from __future__ import annotations

import enum
import logging
import mimetypes
import os
import threading
import time
from typing import Dict, Mapping

from .attachments import Closer, CustomAttachment, Opener, PathAttachment
from .errors import (
    AttachmentOpenError,
    BuildError,
    EncoderStateError,
    PartWriteError,
    SinkCloseError,
)
from .interfaces import AbortableSink, AttachmentSource, BodySink, ByteReader

__all__ = [
    "DEFAULT_BOUNDARY_PREFIX",
    "DEFAULT_CHARSET",
    "DEFAULT_CHUNK_SIZE",
    "MultipartEncoder",
    "generate_boundary",
    "guess_content_type",
]

logger = logging.getLogger(__name__)

LINE_FEED = "\r\n"
DEFAULT_CHARSET = "UTF-8"
DEFAULT_CHUNK_SIZE = 4096
DEFAULT_BOUNDARY_PREFIX = "PythonMultipartBoundary"
FALLBACK_CONTENT_TYPE = "application/octet-stream"

_stamp_lock = threading.Lock()
_last_stamp = 0


def _next_stamp() -> int:
    """Return a nanosecond timestamp strictly greater than any previous one."""

    global _last_stamp
    with _stamp_lock:
        stamp = time.time_ns()
        if stamp <= _last_stamp:
            stamp = _last_stamp + 1
        _last_stamp = stamp
        return stamp


def generate_boundary(prefix: str = DEFAULT_BOUNDARY_PREFIX) -> str:
    """Return a fresh boundary token of the form ``***<prefix><stamp>***``."""

    return f"***{prefix}{_next_stamp()}***"


def guess_content_type(file_name: str) -> str:
    """Best-effort MIME type for *file_name*, defaulting to octet-stream."""

    content_type, _encoding = mimetypes.guess_type(file_name, strict=False)
    return content_type or FALLBACK_CONTENT_TYPE


class _BuildState(enum.Enum):
    IDLE = "idle"
    BUILDING = "building"
    SPENT = "spent"


class MultipartEncoder:
    """
    Fluent builder that serializes form data into a `BodySink`.

    Parameters:
        sink (BodySink): Output layer the body is written to. It is closed when
            ``build`` returns or raises.
        charset (str): Codec used for framing text and text field values; also
            declared in each text part's ``Content-Type``.
        chunk_size (int): Maximum number of bytes read from an attachment at once.
        boundary_prefix (str): Fixed portion of the generated boundary token.

    Duplicate names overwrite earlier registrations; insertion order is kept.
    """

    def __init__(
        self,
        sink: BodySink,
        charset: str = DEFAULT_CHARSET,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        boundary_prefix: str = DEFAULT_BOUNDARY_PREFIX,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        self._sink = sink
        self.charset = charset
        self.chunk_size = int(chunk_size)
        self.boundary_prefix = boundary_prefix
        self._header_fields: Dict[str, str] = {}
        self._form_fields: Dict[str, str] = {}
        self._attachments: Dict[str, AttachmentSource] = {}
        self._boundary: str | None = None
        self._state = _BuildState.IDLE
        self._bytes_written = 0

    @property
    def sink(self) -> BodySink:
        return self._sink

    @property
    def boundary(self) -> str | None:
        """Boundary of the current or last build; ``None`` before ``build``."""

        return self._boundary

    @property
    def content_type(self) -> str | None:
        if self._boundary is None:
            return None
        return f"multipart/form-data; boundary={self._boundary}"

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    @property
    def spent(self) -> bool:
        return self._state is _BuildState.SPENT

    @property
    def header_fields(self) -> Mapping[str, str]:
        return dict(self._header_fields)

    @property
    def form_fields(self) -> Mapping[str, str]:
        return dict(self._form_fields)

    @property
    def attachments(self) -> Mapping[str, AttachmentSource]:
        return dict(self._attachments)

    def add_header_field(self, name: str, value: str) -> "MultipartEncoder":
        """Register a ``Name: Value`` line written ahead of the first part."""

        self._header_fields[name] = value
        return self

    def add_form_field(self, name: str, value: str) -> "MultipartEncoder":
        """Register a ``text/plain`` part."""

        self._form_fields[name] = value
        return self

    def add_attachment(self, name: str, attachment: AttachmentSource) -> "MultipartEncoder":
        """Register a binary part streamed from *attachment*."""

        self._attachments[name] = attachment
        return self

    def add_file(
        self,
        name: str,
        path: str | os.PathLike[str],
        file_name: str | None = None,
    ) -> "MultipartEncoder":
        """Register a file on disk, optionally declared under *file_name*."""

        return self.add_attachment(name, PathAttachment(path, file_name))

    def add_custom(
        self,
        name: str,
        file_name: str,
        opener: Opener,
        closer: Closer | None = None,
    ) -> "MultipartEncoder":
        """Register an attachment whose stream is produced by *opener*."""

        return self.add_attachment(name, CustomAttachment(file_name, opener, closer))

    def build(self) -> int:
        """
        Write the complete multipart body to the sink and close it.

        Returns:
            int: Number of body bytes handed to the sink.

        Raises:
            EncoderStateError: If the encoder is already building or spent.
            AttachmentOpenError: If an attachment stream cannot be opened.
            PartWriteError: If reading an attachment or writing to the sink fails.
            SinkCloseError: If closing the sink fails after a complete body.
        """

        if self._state is not _BuildState.IDLE:
            raise EncoderStateError(f"Encoder is {self._state.value}; build() may only run once")
        self._state = _BuildState.BUILDING
        self._bytes_written = 0
        failed = True
        try:
            self._prepare()
            self._write_header_fields()
            self._write_form_fields()
            self._write_attachments()
            self._finalize()
            failed = False
        finally:
            self._state = _BuildState.SPENT
            self._close_sink(primary_failed=failed)
        logger.info(
            "Multipart body complete: %d field(s), %d attachment(s), %d bytes",
            len(self._form_fields),
            len(self._attachments),
            self._bytes_written,
        )
        return self._bytes_written

    def _prepare(self) -> None:
        self._boundary = generate_boundary(self.boundary_prefix)
        content_type = f"multipart/form-data; boundary={self._boundary}"
        try:
            self._sink.begin(content_type)
        except OSError as exc:
            raise BuildError(f"Sink rejected body start: {exc}") from exc
        logger.debug("Prepared sink with %s", content_type)

    def _write_header_fields(self) -> None:
        for name, value in self._header_fields.items():
            self._write_text(f"{name}: {value}{LINE_FEED}", part=name)
        self._flush()

    def _write_form_fields(self) -> None:
        for name, value in self._form_fields.items():
            self._write_text(
                f"--{self._boundary}{LINE_FEED}"
                f'Content-Disposition: form-data; name="{name}"{LINE_FEED}'
                f"Content-Type: text/plain; charset={self.charset}{LINE_FEED}"
                f"{LINE_FEED}"
                f"{value}{LINE_FEED}",
                part=name,
            )
            self._flush()
            logger.debug("Wrote form field %r", name)

    def _write_attachments(self) -> None:
        for name, attachment in self._attachments.items():
            file_name = attachment.file_name
            self._write_text(
                f"--{self._boundary}{LINE_FEED}"
                f'Content-Disposition: form-data; name="{name}"; filename="{file_name}"{LINE_FEED}'
                f"Content-Type: {guess_content_type(file_name)}{LINE_FEED}"
                f"Content-Transfer-Encoding: binary{LINE_FEED}"
                f"{LINE_FEED}",
                part=name,
            )
            self._flush()
            try:
                try:
                    stream = attachment.open_stream()
                except OSError as exc:
                    raise AttachmentOpenError(
                        f"Cannot open attachment {name!r} ({file_name}): {exc}", part=name
                    ) from exc
                copied = self._copy_stream(stream, name)
            finally:
                self._release_attachment(name, attachment)
            self._write_text(LINE_FEED, part=name)
            self._flush()
            logger.debug("Wrote attachment %r (%s, %d bytes)", name, file_name, copied)

    def _copy_stream(self, stream: ByteReader, part: str) -> int:
        copied = 0
        while True:
            try:
                chunk = stream.read(self.chunk_size)
            except OSError as exc:
                raise PartWriteError(f"Failed reading attachment {part!r}: {exc}", part=part) from exc
            if not chunk:
                return copied
            self._write(chunk, part=part)
            copied += len(chunk)

    def _finalize(self) -> None:
        self._write_text(f"--{self._boundary}--{LINE_FEED}", part=None)
        self._flush()

    def _write_text(self, text: str, *, part: str | None) -> None:
        try:
            data = text.encode(self.charset)
        except UnicodeEncodeError as exc:
            where = f"part {part!r}" if part is not None else "closing boundary"
            raise PartWriteError(
                f"Cannot encode {where} as {self.charset}: {exc}", part=part
            ) from exc
        self._write(data, part=part)

    def _write(self, data: bytes, *, part: str | None) -> None:
        try:
            self._sink.write(data)
        except OSError as exc:
            where = f"part {part!r}" if part is not None else "closing boundary"
            raise PartWriteError(f"Sink write failed for {where}: {exc}", part=part) from exc
        self._bytes_written += len(data)

    def _flush(self) -> None:
        try:
            self._sink.flush()
        except OSError as exc:
            raise PartWriteError(f"Sink flush failed: {exc}") from exc

    def _release_attachment(self, name: str, attachment: AttachmentSource) -> None:
        try:
            attachment.close()
        except OSError as exc:
            logger.warning("Closing attachment %r failed: %s", name, exc)

    def _close_sink(self, *, primary_failed: bool) -> None:
        if primary_failed and isinstance(self._sink, AbortableSink):
            try:
                self._sink.abort()
            except OSError as exc:
                logger.warning("Aborting sink after failed build also failed: %s", exc)
        try:
            self._sink.close()
        except OSError as exc:
            if primary_failed:
                logger.warning("Closing sink after failed build also failed: %s", exc)
                return
            raise SinkCloseError(f"Sink close failed: {exc}") from exc
