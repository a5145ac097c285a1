import struct
import sys

import pytest

from debasar.asar_reader import AsarIndex, _walk_tree, normalize_path
from debasar.exceptions import MalformedInputError, NotFoundError
from tests.debasar.testing_utils import make_asar, pack_asar_header

FILES = [
    ("package.json", b'{"name":"app"}'),
    ("build/dns-fallback.json", b'{"ok":true}'),
    ("build/nested/deep/file.txt", b"deep"),
]


def test_index_lists_all_files():
    data = make_asar(FILES)
    index = AsarIndex.from_bytes(data)
    assert len(index) == 3
    assert set(index.files) == {path for path, _ in FILES}
    assert "build/dns-fallback.json" in index
    assert "build/missing.json" not in index


def test_read_files():
    data = make_asar(FILES)
    index = AsarIndex.from_bytes(data)
    for path, content in FILES:
        assert index.read(data, path) == content


def test_entry_metadata():
    data = make_asar(FILES)
    entry = AsarIndex.from_bytes(data).get("build/dns-fallback.json")
    assert entry.size == len(b'{"ok":true}')
    assert entry.offset == len(b'{"name":"app"}')
    assert entry.integrity is not None
    assert entry.integrity.algorithm == "SHA256"


@pytest.mark.parametrize(
    "path",
    [
        "build/dns-fallback.json",
        "/build/dns-fallback.json",
        "./build/dns-fallback.json",
        "build\\dns-fallback.json",
        "build//dns-fallback.json",
    ],
)
def test_path_normalization(path: str):
    data = make_asar(FILES)
    assert AsarIndex.from_bytes(data).read(data, path) == b'{"ok":true}'


def test_normalize_path():
    assert normalize_path("./a/./b/") == "a/b"


def test_iter_files():
    data = make_asar(FILES)
    found = {entry.path: content for entry, content in AsarIndex.from_bytes(data).iter_files(data)}
    assert found == dict(FILES)


def test_missing_file():
    data = make_asar(FILES)
    with pytest.raises(NotFoundError) as excinfo:
        AsarIndex.from_bytes(data).read(data, "build/other.json")
    assert excinfo.value.identifier == "build/other.json"
    assert "3 files indexed" in str(excinfo.value)


def test_directory_is_not_a_file():
    data = make_asar(FILES)
    with pytest.raises(NotFoundError):
        AsarIndex.from_bytes(data).read(data, "build")


def test_unpacked_file_has_no_content():
    data = make_asar(
        FILES,
        extra_nodes={"native.node": {"size": 10, "unpacked": True}},
    )
    index = AsarIndex.from_bytes(data)
    assert index.get("native.node").unpacked
    with pytest.raises(NotFoundError, match="unpacked"):
        index.read(data, "native.node")


def test_symlink_has_no_content():
    data = make_asar(FILES, extra_nodes={"link.json": {"link": "package.json"}})
    with pytest.raises(NotFoundError, match="symlink"):
        AsarIndex.from_bytes(data).read(data, "link.json")


def test_integrity_mismatch():
    data = bytearray(make_asar([("build/dns-fallback.json", b'{"ok":true}')]))
    data[-2:] = b"!}"
    with pytest.raises(MalformedInputError, match="Integrity"):
        AsarIndex.from_bytes(bytes(data)).read(bytes(data), "build/dns-fallback.json")
    content = AsarIndex.from_bytes(bytes(data)).read(
        bytes(data), "build/dns-fallback.json", verify_integrity=False
    )
    assert content == b'{"ok":tru!}'


def test_without_integrity():
    data = make_asar(FILES, with_integrity=False)
    assert AsarIndex.from_bytes(data).read(data, "package.json") == b'{"name":"app"}'


def test_too_short():
    with pytest.raises(MalformedInputError, match="too short"):
        AsarIndex.from_bytes(b"\x04\x00\x00")


def test_bad_size_pickle():
    data = bytearray(make_asar(FILES))
    data[0:4] = struct.pack("<I", 8)
    with pytest.raises(MalformedInputError) as excinfo:
        AsarIndex.from_bytes(bytes(data))
    assert excinfo.value.offset == 0


def test_header_size_past_end():
    data = bytearray(make_asar(FILES))
    data[4:8] = struct.pack("<I", 10**9)
    data[8:12] = struct.pack("<I", 10**9 - 4)
    with pytest.raises(MalformedInputError):
        AsarIndex.from_bytes(bytes(data))


def test_json_length_exceeds_header():
    data = bytearray(make_asar(FILES))
    data[12:16] = struct.pack("<i", 10**6)
    with pytest.raises(MalformedInputError):
        AsarIndex.from_bytes(bytes(data))


def test_invalid_json():
    header = bytearray(pack_asar_header({"files": {}}))
    header[16:20] = b"}}}}"
    with pytest.raises(MalformedInputError, match="Invalid asar index"):
        AsarIndex.from_bytes(bytes(header))


@pytest.mark.parametrize(
    "tree",
    [
        {},
        {"files": []},
        {"files": {"a.txt": {"size": "ten", "offset": "0"}}},
        {"files": {"a.txt": {"size": 1, "offset": "zero"}}},
        {"files": {"a.txt": {"size": 1, "offset": "-5"}}},
        {"files": {"a.txt": {"size": -1, "offset": "0"}}},
        {"files": {"a.txt": "not a node"}},
        {"files": {"a.txt": {"size": 1, "offset": "0", "integrity": "x"}}},
        {"files": {"a.txt": {"size": 1, "offset": 0}}},
        {"files": {"a.txt": {"size": 1, "offset": True}}},
        {"files": {"a.txt": {"size": 1, "offset": "+0"}}},
        {"files": {"a.txt": {"size": 1, "offset": "0", "integrity": {"hash": "ab", "blocks": 5}}}},
        {"files": {"a.txt": {"size": 1, "offset": "0", "integrity": {"hash": "ab", "blocks": True}}}},
        {"files": {"a.txt": {"size": 1, "offset": "0", "integrity": {"hash": "ab", "blocks": [1.5]}}}},
        {"files": {"a.txt": {"size": 1, "offset": "0", "integrity": {"hash": "ab", "blockSize": 1.5}}}},
        {"files": {"a.txt": {"size": 1, "offset": "0", "integrity": {"hash": "ab", "blockSize": True}}}},
    ],
    ids=[
        "no_root",
        "files_not_dict",
        "bad_size",
        "bad_offset",
        "negative_offset",
        "negative_size",
        "bad_node",
        "bad_integrity",
        "numeric_offset",
        "bool_offset",
        "signed_offset",
        "bad_integrity_blocks",
        "bool_integrity_blocks",
        "non_string_block",
        "bad_block_size",
        "bool_block_size",
    ],
)
def test_invalid_index_structure(tree: dict):
    with pytest.raises(MalformedInputError):
        AsarIndex.from_bytes(pack_asar_header(tree) + b"x")


def test_content_past_end():
    data = make_asar(FILES)
    index = AsarIndex.from_bytes(data)
    with pytest.raises(MalformedInputError, match="past the end"):
        index.read(data[:-3], "build/nested/deep/file.txt")


def test_index_is_immutable():
    index = AsarIndex.from_bytes(make_asar(FILES))
    with pytest.raises(TypeError):
        index.files["new"] = index.get("package.json")  # type: ignore[index]


def test_deeply_nested_index():
    depth = 100_000
    index = '{"files":{"d":' * depth + "{}" + "}}" * depth
    with pytest.raises(MalformedInputError, match="Invalid asar index"):
        AsarIndex.from_bytes(pack_asar_header(index) + b"x")


def test_walk_tree_deeper_than_recursion_limit():
    depth = sys.getrecursionlimit() * 2
    leaf: dict = {"f.txt": {"size": 1, "offset": "0"}}
    tree = leaf
    for _ in range(depth):
        tree = {"d": {"files": tree}}
    entries = _walk_tree(tree)
    assert list(entries) == ["/".join(["d"] * depth + ["f.txt"])]
