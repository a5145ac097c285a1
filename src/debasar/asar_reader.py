"""Reader for Electron ``asar`` bundles.

An asar file starts with two Chromium pickles. The first one holds a single
uint32, the size of the second one. The second pickle holds a JSON string
describing the directory tree, and the file contents follow it back to back::

    uint32 4 | uint32 header_size | uint32 payload_size | int32 json_length | json ... | contents

All integers are little endian. File offsets in the JSON are relative to the
start of the contents region, which begins at ``8 + header_size``.
"""

import hashlib
import json
import logging
import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from debasar.exceptions import MalformedInputError, NotFoundError

logger = logging.getLogger(__name__)

HEADER_STRUCT = struct.Struct("<IIIi")
SIZE_PICKLE_PAYLOAD = 4


@dataclass(frozen=True)
class AsarIntegrity:
    algorithm: str
    hash: str
    block_size: Optional[int] = None
    blocks: tuple[str, ...] = ()


@dataclass(frozen=True)
class AsarFileEntry:
    path: str
    offset: int
    size: int
    integrity: Optional[AsarIntegrity] = None
    unpacked: bool = False
    executable: bool = False
    link: Optional[str] = None

    @property
    def has_content(self) -> bool:
        """Whether the file's bytes are stored inside the bundle."""
        return not self.unpacked and self.link is None


def normalize_path(path: str) -> str:
    parts = [p for p in path.replace("\\", "/").split("/") if p not in ("", ".")]
    return "/".join(parts)


def _parse_integrity(raw: Any, path: str) -> Optional[AsarIntegrity]:
    if raw is None:
        return None
    if not isinstance(raw, dict) or not isinstance(raw.get("hash"), str):
        raise MalformedInputError(f"Invalid integrity record for {path!r}: {raw!r}")
    block_size = raw.get("blockSize")
    if block_size is not None and (
        not isinstance(block_size, int) or isinstance(block_size, bool)
    ):
        raise MalformedInputError(
            f"Invalid integrity block size for {path!r}: {block_size!r}"
        )
    blocks = raw.get("blocks", [])
    if not isinstance(blocks, list) or not all(isinstance(b, str) for b in blocks):
        raise MalformedInputError(f"Invalid integrity blocks for {path!r}: {blocks!r}")
    return AsarIntegrity(
        algorithm=str(raw.get("algorithm", "")),
        hash=raw["hash"],
        block_size=block_size,
        blocks=tuple(blocks),
    )


def _parse_file_node(node: dict, path: str) -> AsarFileEntry:
    if "link" in node:
        if not isinstance(node["link"], str):
            raise MalformedInputError(f"Invalid link target for {path!r}")
        return AsarFileEntry(path=path, offset=0, size=0, link=node["link"])

    size = node.get("size")
    if not isinstance(size, int) or isinstance(size, bool) or size < 0:
        raise MalformedInputError(f"Invalid size {size!r} for {path!r}")

    unpacked = bool(node.get("unpacked", False))
    raw_offset = node.get("offset")
    if unpacked and raw_offset is None:
        offset = 0
    else:
        # Offsets are serialized as decimal strings, since they may exceed 2**53
        if not isinstance(raw_offset, str) or not raw_offset.isdigit():
            raise MalformedInputError(f"Invalid offset {raw_offset!r} for {path!r}")
        offset = int(raw_offset)

    return AsarFileEntry(
        path=path,
        offset=offset,
        size=size,
        integrity=_parse_integrity(node.get("integrity"), path),
        unpacked=unpacked,
        executable=bool(node.get("executable", False)),
    )


def _walk_tree(root: Any) -> dict[str, AsarFileEntry]:
    """Flatten the directory tree into a path -> entry dict.

    Uses an explicit stack, so the nesting depth is bounded by memory only.
    """
    entries: dict[str, AsarFileEntry] = {}
    pending: list[tuple[str, Any]] = [("", root)]
    while pending:
        prefix, files = pending.pop()
        if not isinstance(files, dict):
            raise MalformedInputError(f"Invalid directory listing at {prefix or '/'!r}")

        subdirs = []
        for name, node in files.items():
            if not isinstance(node, dict) or not name or "/" in name:
                raise MalformedInputError(
                    f"Invalid asar node {name!r} under {prefix or '/'!r}"
                )
            path = f"{prefix}/{name}" if prefix else name
            if "files" in node:
                subdirs.append((path, node["files"]))
            else:
                entries[path] = _parse_file_node(node, path)
        pending.extend(reversed(subdirs))
    return entries


@dataclass(frozen=True)
class AsarIndex:
    """Immutable mapping of bundle paths to their location in the contents region."""

    files: Mapping[str, AsarFileEntry]
    content_offset: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "AsarIndex":
        """Parse the header of a complete asar bundle.

        Raises:
            MalformedInputError: If the pickle sizes are inconsistent or the JSON
                index is invalid.
        """
        if len(data) < HEADER_STRUCT.size:
            raise MalformedInputError(
                f"asar bundle too short for a header ({len(data)} bytes)", offset=0
            )
        size_payload, header_size, header_payload_size, json_length = (
            HEADER_STRUCT.unpack_from(data)
        )
        if size_payload != SIZE_PICKLE_PAYLOAD:
            raise MalformedInputError(
                f"Unexpected asar size pickle payload {size_payload}", offset=0
            )
        if header_payload_size + 4 > header_size or json_length < 0:
            raise MalformedInputError(
                f"Inconsistent asar header sizes ({header_size}, "
                f"{header_payload_size}, {json_length})",
                offset=4,
            )
        if json_length + 4 > header_payload_size:
            raise MalformedInputError(
                f"asar index length {json_length} exceeds header payload "
                f"{header_payload_size}",
                offset=12,
            )
        content_offset = 8 + header_size
        if content_offset > len(data):
            raise MalformedInputError(
                f"asar header claims {header_size} bytes but bundle has {len(data)}",
                offset=4,
            )

        raw_index = data[HEADER_STRUCT.size : HEADER_STRUCT.size + json_length]
        try:
            index = json.loads(raw_index.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
            raise MalformedInputError(
                f"Invalid asar index: {e}", offset=HEADER_STRUCT.size
            ) from e
        if not isinstance(index, dict) or "files" not in index:
            raise MalformedInputError(
                "asar index has no root 'files' entry", offset=HEADER_STRUCT.size
            )

        entries = _walk_tree(index["files"])
        logger.debug(
            f"asar index: {len(entries)} files, contents start at {content_offset}"
        )
        return cls(files=MappingProxyType(entries), content_offset=content_offset)

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_path(path) in self.files

    def get(self, path: str) -> AsarFileEntry:
        normalized = normalize_path(path)
        entry = self.files.get(normalized)
        if entry is None:
            raise NotFoundError(
                f"File {normalized!r} not found in asar bundle "
                f"({len(self.files)} files indexed)",
                identifier=normalized,
            )
        return entry

    def read(self, data: bytes, path: str, *, verify_integrity: bool = True) -> bytes:
        """Return the bytes of ``path`` from the bundle ``data`` this index was parsed from."""
        entry = self.get(path)
        if not entry.has_content:
            raise NotFoundError(
                f"File {entry.path!r} is not stored inside the asar bundle "
                f"({'unpacked' if entry.unpacked else 'symlink'})",
                identifier=entry.path,
            )

        start = self.content_offset + entry.offset
        end = start + entry.size
        if end > len(data):
            raise MalformedInputError(
                f"File {entry.path!r} spans bytes {start}-{end} past the end of the "
                f"bundle ({len(data)} bytes)",
                offset=start,
            )
        content = data[start:end]

        if verify_integrity and entry.integrity is not None:
            _check_integrity(entry, content)
        return content

    def iter_files(self, data: bytes) -> Iterator[tuple[AsarFileEntry, bytes]]:
        for entry in self.files.values():
            if entry.has_content:
                yield entry, self.read(data, entry.path, verify_integrity=False)


def _check_integrity(entry: AsarFileEntry, content: bytes) -> None:
    integrity = entry.integrity
    assert integrity is not None
    if integrity.algorithm.upper() != "SHA256":
        logger.warning(
            f"Unsupported integrity algorithm {integrity.algorithm!r} for {entry.path!r}"
        )
        return
    digest = hashlib.sha256(content).hexdigest()
    if digest != integrity.hash.lower():
        raise MalformedInputError(
            f"Integrity check failed for {entry.path!r}: expected {integrity.hash}, "
            f"got {digest}"
        )
