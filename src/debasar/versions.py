"""Discovery of release versions from the tags of a git remote."""

from __future__ import annotations

import functools
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Iterable, List, Optional

from debasar.config import ExtractorConfig, get_default_config
from debasar.exceptions import FetchError

logger = logging.getLogger(__name__)

_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)
TAG_PREFIX = "refs/tags/v"


def _prerelease_key(identifier: str) -> tuple[int, int, str]:
    # Numeric identifiers sort before alphanumeric ones
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


@functools.total_ordering
@dataclass(frozen=True)
class ReleaseVersion:
    """A semantic version. Build metadata is kept but ignored when comparing."""

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "ReleaseVersion":
        match = _SEMVER_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Invalid version: {text!r}")
        major, minor, patch, pre, build = match.groups()
        return cls(
            int(major),
            int(minor),
            int(patch),
            tuple(pre.split(".")) if pre else (),
            build,
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def _key(self):
        # A release sorts after all of its pre-releases
        pre = (
            (1,) if not self.prerelease else (0, *map(_prerelease_key, self.prerelease))
        )
        return (self.major, self.minor, self.patch, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReleaseVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "ReleaseVersion") -> bool:
        if not isinstance(other, ReleaseVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + self.build
        return text


def parse_ls_remote(output: str) -> List[ReleaseVersion]:
    """Extract the release versions from ``git ls-remote --tags`` output.

    Lines that are not ``v``-prefixed semver tags, peeled refs and pre-releases
    are skipped. The result is deduplicated and sorted.
    """
    versions = set()
    for line in output.splitlines():
        logger.debug(f"git ls-remote line={line!r}")
        _, sep, tag = line.partition(f"\t{TAG_PREFIX}")
        if not sep:
            continue
        try:
            version = ReleaseVersion.parse(tag)
        except ValueError:
            continue
        if version.is_prerelease:
            continue
        versions.add(version)
    return sorted(versions)


def filter_versions(
    versions: Iterable[ReleaseVersion], min_version: ReleaseVersion | str
) -> List[ReleaseVersion]:
    if isinstance(min_version, str):
        min_version = ReleaseVersion.parse(min_version)
    return [v for v in versions if v >= min_version]


def list_versions(config: ExtractorConfig | None = None) -> List[ReleaseVersion]:
    """Run ``git ls-remote`` against the configured remote and return new-enough releases."""
    if config is None:
        config = get_default_config()

    command = ["git", "ls-remote", "--tags", config.git_url]
    logger.info(f"Listing tags of {config.git_url}")
    try:
        proc = subprocess.run(command, capture_output=True, text=True, check=True)
    except FileNotFoundError as e:
        raise FetchError(f"git executable not found: {e}") from e
    except subprocess.CalledProcessError as e:
        raise FetchError(
            f"git ls-remote failed with exit code {e.returncode}: {e.stderr.strip()}"
        ) from e

    return filter_versions(parse_ls_remote(proc.stdout), config.min_version)
