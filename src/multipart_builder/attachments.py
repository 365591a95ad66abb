"""
Binary form fields whose payload is opened lazily and streamed by the encoder.

An attachment caches the stream it opens so repeated ``open_stream`` calls
during one build hand back the same handle. The encoder calls ``close`` once
the part's bytes have been copied; subclasses or custom closers may keep the
underlying stream alive instead.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from .interfaces import ByteReader

__all__ = ["Attachment", "CustomAttachment", "PathAttachment"]

logger = logging.getLogger(__name__)

Opener = Callable[[], ByteReader]
Closer = Callable[[ByteReader], None]


class Attachment(ABC):
    """Base class for binary fields; subclasses provide ``_open``."""

    def __init__(self, file_name: str) -> None:
        self._file_name = file_name
        self._stream: Optional[ByteReader] = None

    @property
    def file_name(self) -> str:
        return self._file_name

    @file_name.setter
    def file_name(self, value: str) -> None:
        self._file_name = value

    @property
    def opened(self) -> bool:
        """Return ``True`` while a stream is cached on this attachment."""

        return self._stream is not None

    def open_stream(self) -> ByteReader:
        """Return the cached stream, opening it on first use."""

        if self._stream is None:
            self._stream = self._open()
            logger.debug("Opened attachment stream for %s", self._file_name)
        return self._stream

    def close(self) -> None:
        """Close the cached stream; no-op when nothing was opened."""

        stream = self._stream
        if stream is None:
            return
        self._stream = None
        stream.close()

    @abstractmethod
    def _open(self) -> ByteReader:
        """Open a fresh readable byte stream."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(file_name={self._file_name!r})"


class PathAttachment(Attachment):
    """Attachment backed by a file on disk."""

    def __init__(self, path: str | os.PathLike[str], file_name: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(file_name if file_name is not None else self.path.name)

    def _open(self) -> ByteReader:
        return open(self.path, "rb")


class CustomAttachment(Attachment):
    """
    Attachment whose stream comes from a caller-supplied opener.

    Use it for sources that are not plain files: in-memory buffers, packaged
    resources, or responses from another service. When *closer* is given it
    replaces the default ``stream.close()``, which lets callers keep a shared
    stream open after the encoder is done with it.
    """

    def __init__(self, file_name: str, opener: Opener, closer: Closer | None = None) -> None:
        super().__init__(file_name)
        self._opener = opener
        self._closer = closer

    def _open(self) -> ByteReader:
        return self._opener()

    def close(self) -> None:
        if self._closer is None:
            super().close()
            return
        stream = self._stream
        if stream is None:
            return
        self._stream = None
        self._closer(stream)
