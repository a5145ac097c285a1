import subprocess
from unittest.mock import patch

import pytest

from debasar.config import ExtractorConfig
from debasar.exceptions import FetchError
from debasar.versions import (
    ReleaseVersion,
    filter_versions,
    list_versions,
    parse_ls_remote,
)

LS_REMOTE_OUTPUT = "\n".join(
    [
        "1111111111111111111111111111111111111111\tHEAD",
        "2222222222222222222222222222222222222222\trefs/heads/main",
        "3333333333333333333333333333333333333333\trefs/tags/v7.0.0",
        "4444444444444444444444444444444444444444\trefs/tags/v7.1.0",
        "5555555555555555555555555555555555555555\trefs/tags/v7.1.0^{}",
        "6666666666666666666666666666666666666666\trefs/tags/v7.2.0-beta.1",
        "7777777777777777777777777777777777777777\trefs/tags/v7.10.1",
        "8888888888888888888888888888888888888888\trefs/tags/v7.2.0",
        "9999999999999999999999999999999999999999\trefs/tags/release-7.3.0",
        "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa\trefs/tags/v7.3",
        "",
    ]
)


def test_parse_version():
    v = ReleaseVersion.parse("7.10.1-beta.2+build.5")
    assert (v.major, v.minor, v.patch) == (7, 10, 1)
    assert v.prerelease == ("beta", "2")
    assert v.build == "build.5"
    assert v.is_prerelease
    assert str(v) == "7.10.1-beta.2+build.5"


@pytest.mark.parametrize("text", ["7.1", "v7.1.0", "07.1.0", "7.1.0-", "", "a.b.c"])
def test_parse_invalid_version(text: str):
    with pytest.raises(ValueError):
        ReleaseVersion.parse(text)


def test_version_ordering():
    ordered = [
        "1.0.0-alpha",
        "1.0.0-alpha.1",
        "1.0.0-alpha.beta",
        "1.0.0-beta",
        "1.0.0-beta.2",
        "1.0.0-beta.11",
        "1.0.0-rc.1",
        "1.0.0",
        "1.0.1",
        "1.10.0",
    ]
    versions = [ReleaseVersion.parse(v) for v in ordered]
    assert sorted(reversed(versions)) == versions
    assert ReleaseVersion.parse("1.0.0+a") == ReleaseVersion.parse("1.0.0+b")


def test_parse_ls_remote():
    versions = parse_ls_remote(LS_REMOTE_OUTPUT)
    assert [str(v) for v in versions] == ["7.0.0", "7.1.0", "7.2.0", "7.10.1"]


def test_filter_versions():
    versions = parse_ls_remote(LS_REMOTE_OUTPUT)
    assert [str(v) for v in filter_versions(versions, "7.1.0")] == [
        "7.1.0",
        "7.2.0",
        "7.10.1",
    ]


def test_list_versions():
    completed = subprocess.CompletedProcess(
        args=[], returncode=0, stdout=LS_REMOTE_OUTPUT, stderr=""
    )
    config = ExtractorConfig(git_url="https://example.com/repo", min_version="7.2.0")
    with patch("debasar.versions.subprocess.run", return_value=completed) as mock_run:
        versions = list_versions(config)

    assert [str(v) for v in versions] == ["7.2.0", "7.10.1"]
    assert mock_run.call_args.args[0] == [
        "git",
        "ls-remote",
        "--tags",
        "https://example.com/repo",
    ]


def test_list_versions_git_failure():
    error = subprocess.CalledProcessError(128, ["git"], output="", stderr="fatal: nope\n")
    with patch("debasar.versions.subprocess.run", side_effect=error):
        with pytest.raises(FetchError, match="fatal: nope"):
            list_versions(ExtractorConfig())


def test_list_versions_git_missing():
    with patch("debasar.versions.subprocess.run", side_effect=FileNotFoundError("git")):
        with pytest.raises(FetchError, match="not found"):
            list_versions(ExtractorConfig())
