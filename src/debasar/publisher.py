"""Commits extracted files to a git repository, one tagged commit per release."""

import logging
import os
import subprocess
from typing import List

from debasar.exceptions import PublishError
from debasar.versions import ReleaseVersion

logger = logging.getLogger(__name__)


class ReleasePublisher:
    def __init__(
        self, repo_path: str | os.PathLike, file_name: str = "dns-fallback.json"
    ):
        self.repo_path = os.fspath(repo_path)
        self.file_name = file_name

    @staticmethod
    def tag_name(version: ReleaseVersion | str) -> str:
        return f"v{version}"

    def _git(self, *args: str) -> str:
        command = ["git", *args]
        logger.debug(f"Running {command} in {self.repo_path}")
        try:
            proc = subprocess.run(
                command,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise PublishError(f"Could not run git: {e}", command=command) from e
        except subprocess.CalledProcessError as e:
            raise PublishError(
                f"{' '.join(command)} failed with exit code {e.returncode}",
                command=command,
                stderr=e.stderr or "",
            ) from e
        return proc.stdout

    def existing_tags(self) -> List[str]:
        return self._git("tag", "--list").split()

    def has_tag(self, version: ReleaseVersion | str) -> bool:
        return self.tag_name(version) in self.existing_tags()

    def publish(self, version: ReleaseVersion | str, text: str) -> bool:
        """Commit ``text`` and tag the commit with the version.

        Returns False without touching the repository if the tag already exists.
        """
        tag = self.tag_name(version)
        if self.has_tag(version):
            logger.info(f"Tag {tag} already exists, skipping")
            return False

        path = os.path.join(self.repo_path, self.file_name)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)

        self._git("add", "--", self.file_name)
        status = self._git("status", "--porcelain", "--", self.file_name)
        if status.strip():
            self._git("commit", "-m", f"Update to {tag}")
        else:
            logger.info(f"{self.file_name} unchanged in {tag}, tagging current commit")
        self._git("tag", tag)
        logger.info(f"Published {tag}")
        return True
