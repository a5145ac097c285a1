"""Extraction of a single file from a Debian package wrapping an Electron app.

``package.deb`` -> ``data.tar.xz`` -> ``.../app.asar`` -> ``build/dns-fallback.json``

Both entry points are pure functions of their input bytes. All member names
come from :class:`~debasar.config.ExtractorConfig`.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from debasar.ar_reader import find_ar_member
from debasar.asar_reader import AsarIndex
from debasar.compressed_streams import decompress_xz
from debasar.config import ExtractorConfig, get_default_config
from debasar.exceptions import DecodeError, ExtractionError, Stage
from debasar.tar_reader import TarWalker

logger = logging.getLogger(__name__)


@contextmanager
def _stage(stage: Stage) -> Iterator[None]:
    """Tag any ExtractionError escaping the block with ``stage``."""
    try:
        yield
    except ExtractionError as e:
        if e.stage is not None:
            raise
        logger.debug(f"Extraction failed at {stage}: {e}")
        raise e.with_stage(stage) from e


def _decode_text(content: bytes, path: str) -> str:
    with _stage(Stage.DECODE):
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"{path!r} is not valid UTF-8: {e}") from e


def extract_from_bundle(data: bytes, config: ExtractorConfig | None = None) -> str:
    """Return the target file of an asar bundle as text."""
    if config is None:
        config = get_default_config()

    with _stage(Stage.BUNDLE_PARSE):
        index = AsarIndex.from_bytes(data)
        content = index.read(
            data, config.target_path, verify_integrity=config.verify_integrity
        )
    return _decode_text(content, config.target_path)


def extract_from_package(data: bytes, config: ExtractorConfig | None = None) -> str:
    """Return the target file of the asar bundle packed inside a .deb as text.

    Raises:
        NotFoundError: A member, tar entry or bundle file is missing.
        MalformedInputError: One of the containers cannot be parsed.
        DecodeError: The XZ stream is corrupt, or the target is not UTF-8.

    In every case the error's ``stage`` attribute says where the pipeline stopped.
    """
    if config is None:
        config = get_default_config()

    with _stage(Stage.MEMBER_LOOKUP):
        member = find_ar_member(data, config.member_name)

    with _stage(Stage.DECOMPRESSION):
        tar_data = decompress_xz(member, config)

    with _stage(Stage.TAR_WALK):
        bundle = TarWalker(tar_data).find_by_name(config.bundle_name)
    logger.debug(f"{config.bundle_name} is {len(bundle)} bytes")

    return extract_from_bundle(bundle, config)
