"""Async git client used to clone and pull documentation repositories"""

import asyncio
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class GitCommandError(Exception):
    """Raised when a git command fails or times out"""

    def __init__(self, args: tuple[str, ...], returncode: int | None, message: str):
        self.command = args
        self.returncode = returncode
        self.message = message
        super().__init__(f"git {' '.join(args)} failed: {message}")


class GitClient:
    """Run git as a subprocess without blocking the event loop"""

    def __init__(self, git_executable: str = "git", timeout: float | None = None):
        """
        Initialize git client

        Args:
            git_executable: git binary to run
            timeout: Maximum seconds per git command (None waits indefinitely)
        """
        self.git_executable = git_executable
        self.timeout = timeout

    async def _run(self, *args: str, cwd: Path | None = None) -> str:
        """Run a git command and return its stdout"""
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

        try:
            proc = await asyncio.create_subprocess_exec(
                self.git_executable,
                *args,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError as e:
            raise GitCommandError(args, None, f"{self.git_executable} not found") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise GitCommandError(args, None, f"timed out after {self.timeout}s") from e

        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise GitCommandError(args, proc.returncode, message or f"exit code {proc.returncode}")

        return stdout.decode("utf-8", errors="replace").strip()

    async def clone(self, url: str, dest: Path, branch: str) -> None:
        """Clone a single branch of a repository into dest"""
        logger.info(f"Cloning {url} ({branch}) into {dest}")
        await self._run("clone", "--branch", branch, url, str(dest))

    async def head(self, repo_dir: Path) -> str:
        """Return the commit hash of HEAD"""
        return await self._run("rev-parse", "HEAD", cwd=repo_dir)

    async def pull(self, repo_dir: Path, branch: str) -> int:
        """
        Fetch and merge the tracked branch

        Args:
            repo_dir: Existing clone
            branch: Branch to pull from origin

        Returns:
            Number of files changed by the pull (0 when already up to date)
        """
        before = await self.head(repo_dir)
        await self._run("pull", "--no-rebase", "origin", branch, cwd=repo_dir)
        after = await self.head(repo_dir)

        if before == after:
            return 0

        diff = await self._run("diff", "--name-only", before, after, cwd=repo_dir)
        return len([line for line in diff.splitlines() if line.strip()])
