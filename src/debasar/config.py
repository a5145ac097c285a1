from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any

DEFAULT_GIT_URL = "https://github.com/signalapp/signal-desktop"
DEFAULT_PACKAGE_URL_TEMPLATE = (
    "https://updates.signal.org/desktop/apt/pool/s/signal-desktop/"
    "signal-desktop_{version}_amd64.deb"
)


@dataclass(frozen=True)
class ExtractorConfig:
    """Configuration for :func:`debasar.extract_from_package` and the CLI."""

    member_name: str = "data.tar.xz"
    bundle_name: str = "app.asar"
    target_path: str = "build/dns-fallback.json"

    use_python_xz: bool = False
    verify_integrity: bool = True

    git_url: str = DEFAULT_GIT_URL
    min_version: str = "7.1.0"
    package_url_template: str = DEFAULT_PACKAGE_URL_TEMPLATE
    fetch_timeout: float = 120.0


_default_config_var: contextvars.ContextVar[ExtractorConfig] = contextvars.ContextVar(
    "debasar_default_config", default=ExtractorConfig()
)


def get_default_config() -> ExtractorConfig:
    """Return the current default configuration."""
    return _default_config_var.get()


def set_default_config(config: ExtractorConfig) -> None:
    """Set the default configuration used when no config is passed explicitly."""
    _default_config_var.set(config)


def set_default_config_fields(**kwargs: Any) -> None:
    """Replace individual fields of the default configuration."""
    set_default_config(replace(get_default_config(), **kwargs))


@contextmanager
def default_config(config: ExtractorConfig | None = None, **kwargs: Any):
    """Temporarily use ``config`` as the default configuration."""
    if config is None:
        config = get_default_config()

    if kwargs:
        config = replace(config, **kwargs)

    token = _default_config_var.set(config)
    try:
        yield config
    finally:
        _default_config_var.reset(token)
