"""Defines custom exceptions used throughout the debasar library."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from enum import StrEnum
elif sys.version_info >= (3, 11):
    from enum import StrEnum
else:
    from backports.strenum import StrEnum


class Stage(StrEnum):
    """Position in the extraction pipeline where an error was raised."""

    MEMBER_LOOKUP = "member_lookup"
    DECOMPRESSION = "decompression"
    TAR_WALK = "tar_walk"
    BUNDLE_PARSE = "bundle_parse"
    DECODE = "decode"


class ExtractionError(Exception):
    """Base exception for all errors raised by debasar.

    ``stage`` is set by the pipeline once the error crosses a stage boundary,
    so callers can tell "not a valid package" apart from "artifact absent"
    without looking at the message.
    """

    def __init__(self, message: str, *, stage: Optional[Stage] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def with_stage(self, stage: Stage) -> "ExtractionError":
        """Return a copy of this error tagged with ``stage``."""
        tagged = self.__class__.__new__(self.__class__, *self.args)
        tagged.__dict__.update(self.__dict__)
        tagged.stage = stage
        tagged.__cause__ = self
        tagged.__traceback__ = None
        return tagged

    def __str__(self) -> str:
        if self.stage is None:
            return self.message
        return f"[{self.stage}] {self.message}"


class NotFoundError(ExtractionError):
    """Raised when an expected member, tar entry or bundle file is absent."""

    def __init__(
        self, message: str, *, identifier: str, stage: Optional[Stage] = None
    ):
        super().__init__(message, stage=stage)
        self.identifier = identifier


class MalformedInputError(ExtractionError):
    """Raised when a container, tar stream or bundle index cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        offset: Optional[int] = None,
        stage: Optional[Stage] = None,
    ):
        super().__init__(message, stage=stage)
        self.offset = offset


class DecodeError(ExtractionError):
    """
    Raised when a compressed stream cannot be decompressed, or when content
    that must be UTF-8 text is not.
    """

    pass


class PackageNotInstalledError(ExtractionError):
    """
    Raised when a required third-party library for an optional backend is not
    installed in the environment.
    """

    pass


class FetchError(ExtractionError):
    """Raised when a package cannot be downloaded or read from disk."""

    pass


class PublishError(ExtractionError):
    """Raised when a git command fails while publishing an extracted file."""

    def __init__(self, message: str, *, command: list[str], stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.stderr = stderr
