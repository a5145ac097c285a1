"""Sequential reader for Unix ``ar`` containers, as used by Debian packages."""

import io
import logging
import struct
from typing import BinaryIO, Iterator, Optional

import ar  # type: ignore

from debasar.exceptions import ExtractionError, MalformedInputError, NotFoundError
from debasar.io_helpers import ExceptionTranslatingIO

logger = logging.getLogger(__name__)

ENTRY_STRUCT = struct.Struct("16s12s6s6s8s10s2s")
MAGIC = b"!<arch>\n"
ENTRY_MAGIC = b"`\n"


def _padding(n: int, pad_size: int) -> int:
    reminder = n % pad_size
    return pad_size - reminder if reminder else 0


def _pad(n: int, pad_size: int) -> int:
    return n + _padding(n, pad_size)


class ArEntry:
    __slots__ = ("name", "offset", "size", "mtime", "mode")

    def __init__(self, name: str, offset: int, size: int, mtime: int, mode: int):
        self.name = name
        self.offset = offset
        self.size = size
        self.mtime = mtime
        self.mode = mode

    def __repr__(self) -> str:
        return f"ArEntry(name={self.name!r}, offset={self.offset}, size={self.size})"


def _parse_number(field: bytes, base: int, what: str, header_offset: int) -> int:
    text = field.decode("ascii", errors="replace").strip()
    try:
        # int() also takes signs, underscores and surrounding whitespace
        if text and not text.isdigit():
            raise ValueError(text)
        return int(text or "0", base)
    except ValueError:
        raise MalformedInputError(
            f"Invalid {what} field {field!r} in ar header at offset {header_offset}",
            offset=header_offset,
        ) from None


def iter_ar_entries(stream: BinaryIO) -> Iterator[ArEntry]:
    """Yield the entries of an ar container in storage order.

    The stream must be seekable; it is left positioned after the header of the
    entry just yielded, and the next iteration skips over that entry's payload.
    Symbol tables are skipped, and both GNU and BSD long filenames are resolved.
    """
    magic = stream.read(len(MAGIC))
    if magic != MAGIC:
        raise MalformedInputError(f"Unexpected ar magic: {magic!r}", offset=0)

    stream.seek(0, io.SEEK_END)
    total_size = stream.tell()
    stream.seek(len(MAGIC))

    lookup_data: Optional[bytes] = None
    while True:
        header_offset = stream.tell()
        buffer = stream.read(ENTRY_STRUCT.size)
        if not buffer:
            break
        if len(buffer) < ENTRY_STRUCT.size:
            raise MalformedInputError(
                f"Truncated ar header at offset {header_offset}", offset=header_offset
            )
        raw_name, timestamp, _owner, _group, raw_mode, raw_size, fmag = (
            ENTRY_STRUCT.unpack(buffer)
        )
        if fmag != ENTRY_MAGIC:
            raise MalformedInputError(
                f"Bad ar header terminator {fmag!r} at offset {header_offset}",
                offset=header_offset,
            )
        try:
            name = raw_name.decode("ascii").rstrip()
        except UnicodeDecodeError:
            raise MalformedInputError(
                f"Non-ASCII ar member name {raw_name!r} at offset {header_offset}",
                offset=header_offset,
            ) from None
        mtime = _parse_number(timestamp, 10, "timestamp", header_offset)
        mode = _parse_number(raw_mode, 8, "mode", header_offset)
        size = _parse_number(raw_size, 10, "size", header_offset)

        data_offset = header_offset + ENTRY_STRUCT.size
        next_offset = data_offset + _pad(size, 2)
        if data_offset + size > total_size:
            raise MalformedInputError(
                f"ar member {name!r} at offset {header_offset} claims {size} bytes, "
                f"past the end of the container ({total_size} bytes)",
                offset=header_offset,
            )

        if name == "/" or name == "/SYM64/":
            stream.seek(next_offset)
            continue
        elif name == "//":
            lookup_data = stream.read(size)
            stream.seek(next_offset)
            continue
        elif name.startswith("#1/"):
            name_length = _parse_number(raw_name[3:], 10, "name length", header_offset)
            if name_length > size:
                raise MalformedInputError(
                    f"BSD name length {name_length} exceeds member size {size}",
                    offset=header_offset,
                )
            name = stream.read(name_length).rstrip(b"\x00").decode(errors="replace")
            data_offset += name_length
            size -= name_length
        elif name.startswith("/"):
            if lookup_data is None:
                raise MalformedInputError(
                    "GNU long filename without lookup table", offset=header_offset
                )
            lookup_offset = _parse_number(raw_name[1:], 10, "name offset", header_offset)
            end = lookup_data.find(b"\n", lookup_offset)
            if end == -1:
                end = len(lookup_data)
            name = lookup_data[lookup_offset:end].decode(errors="replace")
        if name.endswith("/"):
            # GNU ar terminates short names with a slash
            name = name[:-1]

        yield ArEntry(name, data_offset, size, mtime, mode)
        stream.seek(next_offset)


def _translate_ar_exception(e: Exception) -> Optional[ExtractionError]:
    if isinstance(e, (OSError, ar.ArchiveError)):
        return MalformedInputError(f"Error reading ar member: {e}")
    return None


def find_ar_member(data: bytes, member_name: str) -> BinaryIO:
    """Return a stream over the payload of the first ar member named ``member_name``.

    Scanning stops at the first match. Raises NotFoundError if the container
    holds no such member, and MalformedInputError on the first bad header.
    """
    stream = io.BytesIO(data)
    count = 0
    last_name: Optional[str] = None
    for entry in iter_ar_entries(stream):
        count += 1
        last_name = entry.name
        logger.debug(f"ar entry: {entry!r}")
        if entry.name == member_name:
            return ExceptionTranslatingIO(
                lambda: ar.substream.Substream(stream, entry.offset, entry.size),  # type: ignore[attr-defined]
                _translate_ar_exception,
            )

    raise NotFoundError(
        f"Member {member_name!r} not found in ar container "
        f"({count} entries inspected, last was {last_name!r})",
        identifier=member_name,
    )
