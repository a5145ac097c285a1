"""Provides I/O helpers, mainly exception translation for library streams."""

import io
import logging
import lzma
import tarfile
from typing import IO, BinaryIO, Callable, Optional

import ar  # type: ignore

try:
    import xz
except ImportError:  # pragma: no cover - optional dependency
    xz = None

from debasar.exceptions import ExtractionError

logger = logging.getLogger(__name__)

_EXCEPTIONS = [
    OSError,
    ValueError,
    EOFError,
    lzma.LZMAError,
    tarfile.TarError,
    ar.ArchiveError,
]
if xz is not None:
    _EXCEPTIONS.append(xz.XZError)
_CAUGHT_EXCEPTIONS = tuple(_EXCEPTIONS)

ExceptionTranslatorFn = Callable[[Exception], Optional[ExtractionError]]


class ExceptionTranslatingIO(io.RawIOBase, BinaryIO):
    """
    Wraps a read-only binary stream so that exceptions raised by the library
    backing it are translated into ExtractionError subclasses.

    Only forward reads are exposed; the wrapped stream is never rewound.
    """

    def __init__(
        self,
        inner: IO[bytes] | Callable[[], IO[bytes]],
        exception_translator: ExceptionTranslatorFn,
    ):
        """
        Args:
            inner: The underlying binary stream, or a callable returning it. A
                callable is invoked immediately, and errors raised while opening
                are translated like read errors.
            exception_translator: Maps a library exception to an ExtractionError,
                or returns None to let the original exception propagate.
        """
        super().__init__()
        self._translate = exception_translator
        self._inner: IO[bytes] | None = None

        if callable(inner):
            try:
                self._inner = inner()
            except _CAUGHT_EXCEPTIONS as e:
                self._translate_exception(e)
        else:
            self._inner = inner

    def _translate_exception(self, e: Exception) -> None:
        translated = self._translate(e)
        if translated is not None:
            logger.debug(f"Translated exception: {repr(e)} -> {repr(translated)}")
            raise translated from e

        if not isinstance(e, ExtractionError):
            logger.error(f"Unknown exception when reading IO: {e}", exc_info=e)
        raise e

    def read(self, n: int = -1) -> bytes:
        assert self._inner is not None
        try:
            return self._inner.read(n)
        except _CAUGHT_EXCEPTIONS as e:
            self._translate_exception(e)
            return b""  # pragma: no cover - unreachable, _translate_exception always raises

    def readinto(self, b) -> int:
        data = self.read(len(b))
        b[: len(data)] = data
        return len(data)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def close(self) -> None:
        try:
            if self._inner is not None:
                self._inner.close()
        except _CAUGHT_EXCEPTIONS as e:
            self._translate_exception(e)
        super().close()

    def __repr__(self) -> str:
        return f"ExceptionTranslatingIO({self._inner!r})"
