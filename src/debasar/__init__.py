from debasar.asar_reader import AsarFileEntry, AsarIndex
from debasar.config import (
    ExtractorConfig,
    default_config,
    get_default_config,
    set_default_config,
)
from debasar.exceptions import (
    DecodeError,
    ExtractionError,
    FetchError,
    MalformedInputError,
    NotFoundError,
    PublishError,
    Stage,
)
from debasar.pipeline import extract_from_bundle, extract_from_package
from debasar.tar_reader import TarEntry, TarWalker

__all__ = [
    # Core
    "extract_from_bundle",
    "extract_from_package",
    "AsarIndex",
    "AsarFileEntry",
    "TarWalker",
    "TarEntry",
    # Config
    "ExtractorConfig",
    "default_config",
    "get_default_config",
    "set_default_config",
    # Exceptions
    "Stage",
    "ExtractionError",
    "NotFoundError",
    "MalformedInputError",
    "DecodeError",
    "FetchError",
    "PublishError",
]
