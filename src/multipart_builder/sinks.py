"""Ready-made `BodySink` implementations for files, memory and HTTP requests."""

from __future__ import annotations

import http.client
import io
import logging
from collections.abc import Mapping
from types import TracebackType
from typing import IO, Callable, Optional

from urllib3.util import Timeout

from .net import RequestTarget, default_timeouts, redact_url_for_logs, resolve_request_target

__all__ = ["BufferSink", "HTTPConnectionSink", "StreamSink"]

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[RequestTarget, Timeout], http.client.HTTPConnection]


class StreamSink:
    """Write the body to any writable binary file object."""

    def __init__(self, stream: IO[bytes], *, close_stream: bool = True) -> None:
        self.stream = stream
        self.close_stream = close_stream
        self.content_type: Optional[str] = None
        self.bytes_written = 0
        self.closed = False

    def begin(self, content_type: str) -> None:
        self.content_type = content_type

    def write(self, data: bytes) -> None:
        self.stream.write(data)
        self.bytes_written += len(data)

    def flush(self) -> None:
        self.stream.flush()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.close_stream:
            self.stream.close()
        else:
            self.stream.flush()


class BufferSink(StreamSink):
    """In-memory sink whose contents stay readable after ``close``."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        super().__init__(self._buffer)
        self._value: bytes | None = None

    def getvalue(self) -> bytes:
        if self._value is not None:
            return self._value
        return self._buffer.getvalue()

    def close(self) -> None:
        if not self.closed:
            self._value = self._buffer.getvalue()
        super().close()


class HTTPConnectionSink:
    """
    Stream the body as a chunked HTTP request.

    ``begin`` opens the connection and sends the request head with the
    multipart ``Content-Type``; every ``write`` goes out as one chunk and
    ``close`` sends the terminating zero-length chunk. After a failed build the
    encoder calls ``abort`` first, which drops the connection so the server
    sees an interrupted request instead of a truncated body. The response is read
    with `get_response` once the body is closed, and the connection is
    released with `disconnect` (or by leaving the ``with`` block).
    """

    def __init__(
        self,
        url: str,
        *,
        method: str = "POST",
        headers: Mapping[str, str] | None = None,
        timeout: Timeout | None = None,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self.url = url
        self.target = resolve_request_target(url)
        self.method = method.upper()
        self.headers = dict(headers or {})
        self.timeout = timeout or default_timeouts()
        self._connection_factory = connection_factory
        self._connection: http.client.HTTPConnection | None = None
        self._response: http.client.HTTPResponse | None = None
        self._head_sent = False
        self.aborted = False
        self.content_type: Optional[str] = None
        self.bytes_written = 0
        self.closed = False

    def __enter__(self) -> "HTTPConnectionSink":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool:
        self.disconnect()
        return False

    def _open_connection(self) -> http.client.HTTPConnection:
        if self._connection_factory is not None:
            return self._connection_factory(self.target, self.timeout)
        connection_cls = (
            http.client.HTTPSConnection if self.target.secure else http.client.HTTPConnection
        )
        return connection_cls(
            self.target.host,
            self.target.port,
            timeout=self.timeout.connect_timeout,
        )

    def begin(self, content_type: str) -> None:
        logger.debug("Opening %s request to %s", self.method, redact_url_for_logs(self.url))
        connection = self._open_connection()
        self._connection = connection
        self.content_type = content_type
        connection.putrequest(self.method, self.target.path)
        for name, value in self.headers.items():
            connection.putheader(name, value)
        connection.putheader("Content-Type", content_type)
        connection.putheader("Transfer-Encoding", "chunked")
        connection.endheaders()
        self._head_sent = True
        sock = getattr(connection, "sock", None)
        if sock is not None:
            sock.settimeout(self.timeout.read_timeout)

    def write(self, data: bytes) -> None:
        if not data:
            return
        connection = self._require_connection()
        connection.send(b"%X\r\n%s\r\n" % (len(data), data))
        self.bytes_written += len(data)

    def flush(self) -> None:
        """Chunks are sent as they are written; nothing is buffered here."""

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._connection is not None and self._head_sent:
            self._connection.send(b"0\r\n\r\n")

    def abort(self) -> None:
        """Drop the connection without the terminating chunk."""

        if self.closed:
            return
        self.closed = True
        self.aborted = True
        if self._connection is not None:
            logger.debug("Aborting request to %s", redact_url_for_logs(self.url))
        self.disconnect()

    def get_response(self) -> http.client.HTTPResponse:
        """Return the server response; only valid after the body is closed."""

        if self._response is not None:
            return self._response
        if self.aborted:
            raise RuntimeError("Request was aborted; no response is available")
        if not self.closed:
            raise RuntimeError("Request body is still open; build the body first")
        self._response = self._require_connection().getresponse()
        logger.debug(
            "Response %s from %s", self._response.status, redact_url_for_logs(self.url)
        )
        return self._response

    def disconnect(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _require_connection(self) -> http.client.HTTPConnection:
        if self._connection is None or not self._head_sent:
            raise RuntimeError("begin() must complete before sending body bytes")
        return self._connection
