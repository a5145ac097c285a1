import functools
import io
import logging
import posixpath
import tarfile
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from debasar.exceptions import ExtractionError, MalformedInputError, NotFoundError
from debasar.io_helpers import ExceptionTranslatingIO

logger = logging.getLogger(__name__)


def _translate_tar_exception(
    e: Exception, path: Optional[str] = None
) -> Optional[ExtractionError]:
    where = f" for entry {path!r}" if path is not None else ""
    if isinstance(e, tarfile.ReadError) and "unexpected end of data" in str(e).lower():
        return MalformedInputError(f"TAR stream is truncated{where}")
    if isinstance(e, (tarfile.TarError, EOFError, OSError)):
        return MalformedInputError(f"Error reading TAR stream{where}: {e}")
    return None


@dataclass(frozen=True)
class TarEntry:
    """A tar header plus a reader that is only valid while it is the current entry."""

    path: str
    size: int
    type: bytes
    reader: Callable[[], bytes] = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        """The final path segment."""
        return posixpath.basename(self.path.rstrip("/"))

    @property
    def is_file(self) -> bool:
        return self.type in (tarfile.REGTYPE, tarfile.AREGTYPE, tarfile.CONTTYPE)

    def read(self) -> bytes:
        return self.reader()


class TarWalker:
    """Forward-only iterator over the entries of an uncompressed tar stream.

    The walker can be iterated once. Reading an entry after the walker has moved
    on to a later one raises ValueError, as the stream cannot be rewound.
    """

    def __init__(self, data: bytes):
        self._data = data
        self._started = False
        self._position = -1

    def __iter__(self) -> Iterator[TarEntry]:
        if self._started:
            raise ValueError("TarWalker is forward-only and cannot be iterated twice")
        self._started = True
        return self._iter_entries()

    def _open(self) -> tarfile.TarFile:
        try:
            return tarfile.open(fileobj=io.BytesIO(self._data), mode="r|", errorlevel=2)
        except tarfile.TarError as e:
            translated = _translate_tar_exception(e)
            assert translated is not None
            raise translated from e

    def _iter_entries(self) -> Iterator[TarEntry]:
        with self._open() as archive:
            members = iter(archive)
            while True:
                try:
                    info = next(members)
                except StopIteration:
                    break
                except (tarfile.TarError, EOFError) as e:
                    translated = _translate_tar_exception(e)
                    assert translated is not None
                    raise translated from e

                self._position += 1
                logger.debug(f"tar entry: {info.name} ({info.size} bytes)")
                yield TarEntry(
                    path=info.name,
                    size=info.size,
                    type=info.type,
                    reader=functools.partial(
                        self._read_member, archive, info, self._position
                    ),
                )

    def _read_member(
        self, archive: tarfile.TarFile, info: tarfile.TarInfo, position: int
    ) -> bytes:
        if position != self._position:
            raise ValueError(
                f"Tar entry {info.name!r} is no longer readable, the walker has moved past it"
            )

        def _open_member():
            stream = archive.extractfile(info)
            if stream is None:
                raise tarfile.ReadError("entry has no content")
            return stream

        translator = functools.partial(_translate_tar_exception, path=info.name)
        with ExceptionTranslatingIO(_open_member, translator) as stream:
            return stream.read()

    def find_by_name(self, name: str) -> bytes:
        """Return the content of the first regular file whose final path segment is ``name``.

        Scanning stops at the first match, so later entries with the same name are
        never looked at.
        """
        count = 0
        for entry in self:
            count += 1
            if entry.is_file and entry.name == name:
                logger.debug(f"Found {name!r} at {entry.path!r}")
                return entry.read()

        raise NotFoundError(
            f"No file named {name!r} in tar stream ({count} entries scanned)",
            identifier=name,
        )
