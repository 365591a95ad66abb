"""Protocols describing the collaborators the encoder writes to and reads from."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class BodySink(Protocol):
    """Writable output layer supplied by the transport collaborator."""

    def begin(self, content_type: str) -> None:
        """Announce that a request body of *content_type* is about to be written."""
        ...

    def write(self, data: bytes) -> None:
        """Write *data* to the body."""
        ...

    def flush(self) -> None:
        """Push buffered body bytes towards the transport."""
        ...

    def close(self) -> None:
        """Release the output layer. Called exactly once per build."""
        ...


class ByteReader(Protocol):
    """Readable binary stream produced by an attachment."""

    def read(self, size: int = -1, /) -> bytes:
        """Return at most *size* bytes, or ``b""`` at end of stream."""
        ...

    def close(self) -> None:
        """Release the stream."""
        ...


class AttachmentSource(Protocol):
    """Binary form field whose byte source is opened on demand."""

    @property
    def file_name(self) -> str:
        """File name declared in the part's ``Content-Disposition``."""
        ...

    def open_stream(self) -> ByteReader:
        """Return the attachment stream, opening it on first use."""
        ...

    def close(self) -> None:
        """Release the opened stream, if any."""
        ...


@runtime_checkable
class AbortableSink(BodySink, Protocol):
    """Sink that can discard a body left incomplete by a failed build."""

    def abort(self) -> None:
        """Drop the output without completing it. Followed by ``close``."""
        ...
