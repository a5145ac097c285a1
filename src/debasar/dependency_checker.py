import shutil
import subprocess
import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from typing import Optional


@dataclass
class DependencyVersions:
    """Versions of the dependencies and external tools used by debasar."""

    python_version: Optional[str] = None
    ar_version: Optional[str] = None
    python_xz_version: Optional[str] = None
    tqdm_version: Optional[str] = None
    backports_strenum_version: Optional[str] = None
    git_version: Optional[str] = None


def get_dependency_versions() -> DependencyVersions:
    """Get versions of all dependencies.

    Returns:
        DependencyVersions: A dataclass containing version information for all dependencies.
    """
    versions = DependencyVersions()

    versions.python_version = (
        f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    )

    for package, attr in [
        ("ar", "ar_version"),
        ("python-xz", "python_xz_version"),
        ("tqdm", "tqdm_version"),
        ("backports.strenum", "backports_strenum_version"),
    ]:
        try:
            setattr(versions, attr, version(package))
        except PackageNotFoundError:
            pass

    git_path = shutil.which("git")
    if git_path:
        try:
            proc = subprocess.run(
                [git_path, "--version"],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
            versions.git_version = proc.stdout.strip() or "available"
        except OSError:
            versions.git_version = "available"

    return versions


def format_dependency_versions(versions: DependencyVersions) -> str:
    """Format dependency versions as a string."""
    lines = ["Dependency Versions:"]
    for field in versions.__dataclass_fields__:
        value = getattr(versions, field)
        if value is not None:
            lines.append(f"  {field}: {value}")
        else:
            lines.append(f"  {field}: not installed")
    return "\n".join(lines)


if __name__ == "__main__":
    versions = get_dependency_versions()
    print(format_dependency_versions(versions))
