# Command line front end: extract the DNS fallback file from local files, or sync
# every published release into a git repository.

import argparse
import logging
import sys
from dataclasses import replace
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version
from typing import List, Optional, Sequence

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from debasar.config import ExtractorConfig, get_default_config
from debasar.dependency_checker import (
    format_dependency_versions,
    get_dependency_versions,
)
from debasar.exceptions import ExtractionError
from debasar.fetch import fetch_package, load_file, package_url
from debasar.pipeline import extract_from_bundle, extract_from_package
from debasar.publisher import ReleasePublisher
from debasar.versions import ReleaseVersion, list_versions

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract build/dns-fallback.json from Signal Desktop packages."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--version", action="store_true", help="Print version information and exit"
    )
    parser.add_argument(
        "--use-python-xz",
        action="store_true",
        help="Decompress data.tar.xz with python-xz instead of lzma",
    )
    parser.add_argument(
        "--no-verify-integrity",
        action="store_true",
        help="Skip the asar integrity hash check",
    )
    parser.add_argument("--target", help="Path of the file to extract from app.asar")

    subparsers = parser.add_subparsers(dest="command")

    extract = subparsers.add_parser("extract", help="Extract from local files")
    source = extract.add_mutually_exclusive_group(required=True)
    source.add_argument("--deb", help="Path to a .deb package")
    source.add_argument("--asar", help="Path to an app.asar bundle")
    extract.add_argument("-o", "--output", help="Write to a file instead of stdout")

    versions = subparsers.add_parser("versions", help="List released versions")
    versions.add_argument("--git-url", help="Repository to list tags from")
    versions.add_argument("--min-version", help="Skip versions older than this")

    sync = subparsers.add_parser(
        "sync", help="Download, extract and commit every new release"
    )
    sync.add_argument("--repo", required=True, help="Git repository to publish to")
    sync.add_argument(
        "--version",
        dest="versions",
        action="append",
        help="Only process this version (repeatable)",
    )
    sync.add_argument("--git-url", help="Repository to list tags from")
    sync.add_argument("--min-version", help="Skip versions older than this")
    sync.add_argument("--hide-progress", action="store_true", help="Hide progress bar")
    return parser


def _config_from_args(args: argparse.Namespace) -> ExtractorConfig:
    config = get_default_config()
    overrides = {}
    if args.use_python_xz:
        overrides["use_python_xz"] = True
    if args.no_verify_integrity:
        overrides["verify_integrity"] = False
    if args.target:
        overrides["target_path"] = args.target
    if getattr(args, "git_url", None):
        overrides["git_url"] = args.git_url
    if getattr(args, "min_version", None):
        overrides["min_version"] = args.min_version
    return replace(config, **overrides)


def run_extract(args: argparse.Namespace, config: ExtractorConfig) -> int:
    try:
        if args.deb:
            text = extract_from_package(load_file(args.deb), config)
        else:
            text = extract_from_bundle(load_file(args.asar), config)
    except ExtractionError as e:
        logger.error(f"Extraction failed: {e}")
        return 1

    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    else:
        sys.stdout.write(text)
    return 0


def run_versions(config: ExtractorConfig) -> int:
    try:
        versions = list_versions(config)
    except ExtractionError as e:
        logger.error(f"Could not list versions: {e}")
        return 1
    for v in versions:
        print(v)
    return 0


def sync_version(
    version: ReleaseVersion, publisher: ReleasePublisher, config: ExtractorConfig
) -> bool:
    """Fetch, extract and publish one version. Returns whether a tag was created."""
    if publisher.has_tag(version):
        logger.debug(f"v{version} already published")
        return False
    data = fetch_package(package_url(version, config), config.fetch_timeout)
    text = extract_from_package(data, config)
    return publisher.publish(version, text)


def run_sync(args: argparse.Namespace, config: ExtractorConfig) -> int:
    try:
        if args.versions:
            versions: List[ReleaseVersion] = [
                ReleaseVersion.parse(v) for v in args.versions
            ]
        else:
            versions = list_versions(config)
    except ValueError as e:
        logger.error(str(e))
        return 2
    except ExtractionError as e:
        logger.error(f"Could not list versions: {e}")
        return 1

    publisher = ReleasePublisher(args.repo)
    failures: List[ReleaseVersion] = []
    published = 0
    with logging_redirect_tqdm():
        for version in tqdm(
            versions, desc="Syncing releases", disable=args.hide_progress
        ):
            try:
                if sync_version(version, publisher, config):
                    published += 1
            except ExtractionError as e:
                logger.error(f"v{version}: {e}")
                failures.append(version)

    logger.info(
        f"{published} published, {len(failures)} failed, {len(versions)} considered"
    )
    return 1 if failures else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.version:
        try:
            print(f"debasar {package_version('debasar')}")
        except PackageNotFoundError:
            print("debasar (not installed)")
        print(format_dependency_versions(get_dependency_versions()))
        return 0

    config = _config_from_args(args)
    if args.command == "extract":
        return run_extract(args, config)
    elif args.command == "versions":
        return run_versions(config)
    elif args.command == "sync":
        return run_sync(args, config)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
