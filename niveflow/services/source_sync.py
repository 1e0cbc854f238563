"""Documentation source synchronization - git clones and local copies"""

import asyncio
import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from niveflow.config import config
from niveflow.models.run_result import SyncResult
from niveflow.models.source import SourceDescriptor
from niveflow.services.change_detector import ChangeDetector
from niveflow.services.fingerprint_store import FingerprintStore, MirroredFingerprintStore
from niveflow.services.git_client import GitClient, GitCommandError
from niveflow.utils.fs import ignore_hidden, replace_tree

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when a source cannot be synchronized"""

    def __init__(self, message: str, cause: Exception | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class SourcePathError(SyncError):
    """Raised when a local source directory does not exist"""

    pass


class SourceSynchronizer:
    """Pull each source into its own staging directory"""

    def __init__(
        self,
        staging_dir: str | Path | None = None,
        store: FingerprintStore | None = None,
        git: GitClient | None = None,
        detector: ChangeDetector | None = None,
    ):
        """
        Initialize source synchronizer

        Args:
            staging_dir: Parent of the per-source staging directories
            store: Fingerprint cache (optional, mirrored to config.state_dir if None)
            git: Git client (optional, creates one with config.git_timeout_seconds if None)
            detector: Change detector (optional, creates one over store if None)
        """
        self.staging_dir = Path(staging_dir or config.staging_dir).resolve()
        self.store = store or MirroredFingerprintStore(config.state_dir)
        self.git = git or GitClient(timeout=config.git_timeout_seconds)
        self.detector = detector or ChangeDetector(self.store)

    def staging_path(self, source: SourceDescriptor) -> Path:
        return self.staging_dir / source.name

    async def sync(self, source: SourceDescriptor) -> SyncResult:
        """
        Synchronize one source

        Sync failures are logged and reported as "not changed" so that a
        transient error never forces a rebuild.

        Args:
            source: Source to synchronize

        Returns:
            SyncResult with changed flag and error message if the sync failed
        """
        try:
            if source.is_local:
                changed = await self._sync_local(source)
            else:
                changed = await self._sync_remote(source)
            return SyncResult(name=source.name, changed=changed)
        except SyncError as e:
            logger.error(f"[{source.name}] Sync failed: {e}")
            return SyncResult(name=source.name, changed=False, error=str(e))

    async def sync_all(self, sources: Iterable[SourceDescriptor]) -> list[SyncResult]:
        """
        Synchronize sources concurrently

        Each result is captured independently; one failure never aborts the others.
        """
        sources = list(sources)
        results = await asyncio.gather(
            *(self.sync(source) for source in sources), return_exceptions=True
        )

        sync_results: list[SyncResult] = []
        for source, result in zip(sources, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(f"[{source.name}] Unexpected sync error: {result}", exc_info=result)
                sync_results.append(SyncResult(name=source.name, changed=False, error=str(result)))
            else:
                sync_results.append(result)
        return sync_results

    async def _sync_remote(self, source: SourceDescriptor) -> bool:
        """Clone or pull a git source"""
        target = self.staging_path(source)

        try:
            if not (target / ".git").exists():
                if target.exists():
                    logger.warning(f"[{source.name}] {target} is not a git clone, recreating")
                    shutil.rmtree(target)
                await self._clone(source, target)
                record = self.detector.from_pull(source, cloned=True, changes=0)
                logger.info(f"[{source.name}] Cloned {source.url} ({source.branch})")
            else:
                changes = await self.git.pull(target, source.branch)
                record = self.detector.from_pull(source, cloned=False, changes=changes)
                if record.changed:
                    logger.info(f"[{source.name}] Pulled {changes} changed file(s)")
                else:
                    logger.info(f"[{source.name}] No changes")
        except (GitCommandError, OSError) as e:
            raise SyncError(f"Git sync failed for {source.name}: {e}", e) from e

        return record.changed

    async def _clone(self, source: SourceDescriptor, target: Path) -> None:
        """Clone into a temporary sibling and move it into place"""
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.clone")
        if tmp.exists():
            shutil.rmtree(tmp)

        try:
            await self.git.clone(source.url, tmp, source.branch)
            tmp.rename(target)
        finally:
            if tmp.exists():
                shutil.rmtree(tmp, ignore_errors=True)

    async def _sync_local(self, source: SourceDescriptor) -> bool:
        """Copy a local source into staging if its fingerprint changed"""
        local_path = source.resolve_local_path()
        if not local_path.is_dir():
            raise SourcePathError(f"Local path does not exist: {local_path}")

        record = await asyncio.to_thread(self.detector.detect, source)
        if record.error:
            raise SourcePathError(record.error)

        target = self.staging_path(source)
        if not record.changed and target.exists():
            logger.info(f"[{source.name}] No changes")
            return False

        try:
            await asyncio.to_thread(replace_tree, local_path, target, ignore_hidden)
        except OSError as e:
            self.detector.restore(source.name, record.previous)
            raise SyncError(f"Failed to copy {local_path} to {target}: {e}", e) from e

        logger.info(f"[{source.name}] Synced local files from {local_path}")
        return True
