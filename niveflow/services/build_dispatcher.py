"""Per-source static site builds through the external bundler"""

import asyncio
import logging
import shlex
import shutil
from pathlib import Path

from niveflow.config import config
from niveflow.models.run_result import BuildOutcome, BuildStatus
from niveflow.models.source import SourceDescriptor
from niveflow.utils.fs import IgnoreFn, copy_tree_into, empty_dir, ignore_git
from niveflow.utils.nav_tree import NAV_INDEX_FILENAME, generate_nav_tree

logger = logging.getLogger(__name__)

META_FILENAME = "meta.json"


class BuildError(Exception):
    """Raised when building a source fails"""

    def __init__(self, name: str, message: str):
        self.source_name = name
        self.message = message
        super().__init__(f"Build failed for {name}: {message}")


class BuildDispatcher:
    """Stage one source into the bundler project, run the bundler, relocate output"""

    def __init__(
        self,
        staging_dir: str | Path | None = None,
        site_root: str | Path | None = None,
        output_path: str | Path | None = None,
        build_command: str | list[str] | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize build dispatcher

        Args:
            staging_dir: Parent of the per-source staging directories
            site_root: Bundler project root (cwd of the bundler)
            output_path: Base output directory for sources without their own output path
            build_command: Bundler command; --outDir <dir> is appended
            timeout: Maximum seconds per bundler run
        """
        self.staging_dir = Path(staging_dir or config.staging_dir).resolve()
        self.site_root = Path(site_root or config.site_root).resolve()
        self.output_base = Path(output_path or config.output_path).resolve()

        command = build_command or config.build_command
        self.build_command = shlex.split(command) if isinstance(command, str) else list(command)
        self.timeout = timeout if timeout is not None else config.build_timeout_seconds

    @property
    def docs_dir(self) -> Path:
        """Where the bundler reads documentation from"""
        return self.site_root / "public" / "docs"

    @property
    def meta_target(self) -> Path:
        """Where the bundler reads global site metadata from"""
        return self.site_root / "public" / META_FILENAME

    def output_dir(self, source: SourceDescriptor) -> Path:
        return source.resolve_output_dir(self.output_base)

    async def build(self, source: SourceDescriptor) -> BuildOutcome:
        """
        Build the site for one source

        Args:
            source: Source whose staged content is built

        Returns:
            BuildOutcome with status BUILT

        Raises:
            BuildError: If staging, the bundler or output relocation fails
        """
        source_dir = self.staging_dir / source.name
        if not source_dir.is_dir():
            raise BuildError(source.name, f"no synced content at {source_dir}")

        output_dir = self.output_dir(source)
        logger.info(f"[{source.name}] Building into {output_dir}")

        await self.build_directory(source.name, source_dir, output_dir, ignore_git)

        logger.info(f"[{source.name}] Build complete: {output_dir}")
        return BuildOutcome(name=source.name, status=BuildStatus.BUILT, output_dir=str(output_dir))

    async def build_directory(
        self, name: str, source_dir: Path, output_dir: Path, ignore: IgnoreFn | None = None
    ) -> None:
        """Stage source_dir, run the bundler into output_dir and copy the navigation index"""
        try:
            await asyncio.to_thread(self._stage, name, source_dir, ignore)
        except OSError as e:
            raise BuildError(name, f"failed to stage {source_dir}: {e}") from e

        await self._run_bundler(name, output_dir)

        try:
            self._copy_nav_index(output_dir)
        except OSError as e:
            raise BuildError(name, f"failed to copy navigation index: {e}") from e

    def clear_docs(self) -> None:
        """Remove staged documentation from the bundler project"""
        if self.docs_dir.exists():
            shutil.rmtree(self.docs_dir)

    def _stage(self, name: str, source_dir: Path, ignore: IgnoreFn | None) -> None:
        empty_dir(self.docs_dir)
        copy_tree_into(source_dir, self.docs_dir, ignore=ignore)
        generate_nav_tree(self.docs_dir)

        meta = source_dir / META_FILENAME
        if meta.exists():
            shutil.copyfile(meta, self.meta_target)
            logger.info(f"[{name}] Copied {META_FILENAME} -> {self.meta_target}")
        elif self.meta_target.exists():
            # Metadata of a previously built source must not leak into this one
            self.meta_target.unlink()

    async def _run_bundler(self, name: str, output_dir: Path) -> None:
        command = [*self.build_command, "--outDir", str(output_dir)]
        logger.info(f"[{name}] Running: {shlex.join(command)}")

        try:
            proc = await asyncio.create_subprocess_exec(*command, cwd=str(self.site_root))
        except OSError as e:
            raise BuildError(name, f"could not start bundler: {e}") from e

        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise BuildError(name, f"bundler timed out after {self.timeout}s") from e

        if returncode != 0:
            raise BuildError(name, f"bundler exited with code {returncode}")

    def _copy_nav_index(self, output_dir: Path) -> None:
        index = self.docs_dir / NAV_INDEX_FILENAME
        if index.exists():
            output_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(index, output_dir / NAV_INDEX_FILENAME)
