import logging
import os
import urllib.error
from urllib.request import Request, urlopen

from debasar.config import ExtractorConfig, get_default_config
from debasar.exceptions import FetchError
from debasar.versions import ReleaseVersion

logger = logging.getLogger(__name__)

USER_AGENT = "debasar"


def package_url(
    version: ReleaseVersion | str, config: ExtractorConfig | None = None
) -> str:
    if config is None:
        config = get_default_config()
    return config.package_url_template.format(version=version)


def fetch_package(url: str, timeout: float | None = None) -> bytes:
    """Download ``url`` fully into memory."""
    if timeout is None:
        timeout = get_default_config().fetch_timeout

    logger.info(f"Downloading {url}")
    request = Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urlopen(request, timeout=timeout) as response:
            data = response.read()
    except urllib.error.HTTPError as e:
        raise FetchError(f"HTTP {e.code} fetching {url}: {e.reason}") from e
    except (urllib.error.URLError, OSError) as e:
        raise FetchError(f"Error fetching {url}: {e}") from e

    logger.debug(f"Downloaded {len(data)} bytes from {url}")
    return data


def load_file(path: str | os.PathLike) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FetchError(f"Error reading {path}: {e}") from e
