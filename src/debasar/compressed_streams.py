import io
import logging
import lzma
from typing import TYPE_CHECKING, BinaryIO, Callable, Optional

from debasar.config import ExtractorConfig, get_default_config
from debasar.exceptions import DecodeError, ExtractionError, PackageNotInstalledError
from debasar.io_helpers import ExceptionTranslatingIO

if TYPE_CHECKING:
    import xz
else:  # pragma: no cover - optional dependency
    try:
        import xz
    except ImportError:
        xz = None

logger = logging.getLogger(__name__)


def _translate_lzma_exception(e: Exception) -> Optional[ExtractionError]:
    if isinstance(e, lzma.LZMAError):
        return DecodeError(f"Error reading LZMA stream: {repr(e)}")
    elif isinstance(e, EOFError):
        return DecodeError(f"LZMA stream is truncated: {repr(e)}")
    return None  # pragma: no cover -- all possible exceptions should have been handled


def open_lzma_stream_fileobj(fileobj: BinaryIO) -> BinaryIO:
    return ExceptionTranslatingIO(
        lambda: lzma.LZMAFile(fileobj), _translate_lzma_exception
    )


def _translate_python_xz_exception(e: Exception) -> Optional[ExtractionError]:
    if xz is not None and isinstance(e, xz.XZError):
        return DecodeError(f"Error reading XZ stream: {repr(e)}")
    elif isinstance(e, (lzma.LZMAError, EOFError, ValueError)):
        # python-xz decodes blocks with the standard lzma module, and reports
        # some structural problems as ValueError
        return DecodeError(f"Error reading XZ stream: {repr(e)}")
    return None


def open_python_xz_stream_fileobj(fileobj: BinaryIO) -> BinaryIO:
    if xz is None:
        raise PackageNotInstalledError(
            "python-xz package is not installed, required when use_python_xz is set"
        ) from None
    # python-xz parses the stream index from the end, so it needs a seekable input
    buffered = io.BytesIO(fileobj.read())
    return ExceptionTranslatingIO(
        lambda: xz.open(buffered), _translate_python_xz_exception
    )


def _stream_opener(config: ExtractorConfig) -> Callable[[BinaryIO], BinaryIO]:
    if config.use_python_xz:
        return open_python_xz_stream_fileobj
    return open_lzma_stream_fileobj


def decompress_xz(fileobj: BinaryIO, config: ExtractorConfig | None = None) -> bytes:
    """Decompress a whole XZ stream into memory.

    Raises DecodeError if the stream is corrupt, truncated or decodes to nothing.
    """
    if config is None:
        config = get_default_config()

    with _stream_opener(config)(fileobj) as stream:
        data = stream.read()

    if not data:
        raise DecodeError("XZ stream decompressed to no data")
    logger.debug(f"Decompressed XZ stream to {len(data)} bytes")
    return data
