"""Clone or update the Klipper repository that holds the documentation."""

from __future__ import annotations

import asyncio
from asyncio.subprocess import PIPE
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import shutil
from time import perf_counter

from klipper_docs_mcp.errors import GitSyncError


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GitSourceConfig:
    """Where the documentation comes from.

    Attributes:
        repo_url: Git repository URL (https or ssh).
        branch: Branch to track.
        docs_subpath: Directory inside the repository holding the markdown.
        shallow_clone: Clone with ``--depth 1`` for a faster initial sync.
    """

    repo_url: str
    branch: str = "master"
    docs_subpath: str = "docs"
    shallow_clone: bool = True


@dataclass(slots=True)
class GitSyncResult:
    """Summary data emitted after a synchronization cycle."""

    commit_id: str
    duration_seconds: float
    repo_updated: bool
    docs_path: Path


class GitRepoSyncer:
    """Keeps a local working copy of the repository at the tip of one branch."""

    def __init__(
        self,
        config: GitSourceConfig,
        repo_path: Path | str,
        logger_instance: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.repo_path = Path(repo_path)
        self.repo_parent = self.repo_path.parent
        self._lock = asyncio.Lock()
        self._logger = logger_instance or logger

    @property
    def docs_path(self) -> Path:
        return self.repo_path / self.config.docs_subpath

    def has_working_copy(self) -> bool:
        return (self.repo_path / ".git").exists()

    async def sync(self) -> GitSyncResult:
        """Clone on first use, otherwise fetch and hard-reset to the remote branch.

        Raises:
            GitSyncError: any git command failed or git is not installed.
        """

        async with self._lock:
            start = perf_counter()
            repo_updated = await self._prepare_repository()
            commit_id = await self._rev_parse("HEAD")
            duration = perf_counter() - start
            self._logger.info(
                "Git sync complete: commit=%s duration=%.2fs updated=%s",
                commit_id,
                duration,
                repo_updated,
            )
            if not self.docs_path.is_dir():
                self._logger.warning("Docs directory %s not found in repository", self.docs_path)
            return GitSyncResult(
                commit_id=commit_id,
                duration_seconds=duration,
                repo_updated=repo_updated,
                docs_path=self.docs_path,
            )

    async def _prepare_repository(self) -> bool:
        self.repo_parent.mkdir(parents=True, exist_ok=True)

        if not self.has_working_copy():
            self._logger.info("Cloning %s (branch %s)", self.config.repo_url, self.config.branch)
            await self._clone_repository()
            return True

        self._logger.info("Repository exists at %s, fetching latest changes", self.repo_path)
        before = await self._rev_parse("HEAD")
        fetch_args = ["fetch", "origin", self.config.branch]
        if self.config.shallow_clone:
            fetch_args.insert(1, "--depth=1")
        await self._run_git(*fetch_args)
        await self._run_git("reset", "--hard", f"origin/{self.config.branch}")
        after = await self._rev_parse("HEAD")
        return before != after

    async def _clone_repository(self) -> None:
        if self.repo_path.exists():
            await asyncio.to_thread(shutil.rmtree, self.repo_path)

        args: list[str] = ["clone"]
        if self.config.shallow_clone:
            args += ["--depth", "1", "--single-branch"]
        args += ["--branch", self.config.branch, self.config.repo_url, str(self.repo_path)]

        await self._run_git(*args, use_repo=False)

    async def _rev_parse(self, ref: str) -> str:
        return (await self._run_git("rev-parse", ref)).strip()

    async def _run_git(self, *args: str, use_repo: bool = True) -> str:
        cmd = ["git", *args]
        working_dir = self.repo_path if use_repo else self.repo_parent
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd, cwd=str(working_dir), env=env, stdout=PIPE, stderr=PIPE
            )
        except FileNotFoundError as err:
            raise GitSyncError("git executable not found", context="GitRepoSyncer") from err

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            detail = stderr.decode().strip() or stdout.decode().strip() or "unknown error"
            raise GitSyncError(
                f"git command failed ({' '.join(cmd)}): {detail}",
                context="GitRepoSyncer",
                details={"repository": self.config.repo_url, "branch": self.config.branch},
            )

        return stdout.decode()
