"""Change detection for documentation sources"""

import hashlib
import logging
from pathlib import Path

from niveflow.models.run_result import ChangeRecord
from niveflow.models.source import SourceDescriptor
from niveflow.services.fingerprint_store import FingerprintStore

logger = logging.getLogger(__name__)

TRACKED_EXTENSIONS = (".md", ".json")


def _is_ignored(name: str) -> bool:
    return name.startswith(".") or name == "node_modules"


def compute_fingerprint(root: Path) -> str:
    """
    Fingerprint a documentation tree

    Hashes (path, modification time, byte length) of every tracked file below
    root. Entries are visited in sorted order so an unchanged tree always yields
    the same value.

    Args:
        root: Directory to scan

    Returns:
        Hex digest of the tree
    """
    digest = hashlib.sha256()

    def _walk(directory: Path) -> None:
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if _is_ignored(entry.name):
                continue
            if entry.is_dir():
                _walk(entry)
            elif entry.name.endswith(TRACKED_EXTENSIONS):
                stat = entry.stat()
                digest.update(f"{entry}\0{stat.st_mtime_ns}\0{stat.st_size}\n".encode())

    _walk(root)
    return digest.hexdigest()


class ChangeDetector:
    """Decide whether a source changed since its last successful sync"""

    def __init__(self, store: FingerprintStore):
        """
        Initialize change detector

        Args:
            store: Fingerprint cache shared with the synchronizer
        """
        self.store = store

    def detect(self, source: SourceDescriptor) -> ChangeRecord:
        """
        Detect changes of a local source by fingerprinting its directory

        The cache is updated to the new fingerprint whether or not it changed.

        Args:
            source: Local source to check

        Returns:
            ChangeRecord; changed is False with error set if the path is missing
        """
        path = source.resolve_local_path()
        previous = self.store.get(source.name)

        if not path.is_dir():
            error = f"Local path does not exist: {path}"
            logger.error(f"[{source.name}] {error}")
            return ChangeRecord(name=source.name, changed=False, previous=previous, error=error)

        fingerprint = compute_fingerprint(path)
        changed = previous != fingerprint
        self.store.set(source.name, fingerprint)

        logger.debug(f"[{source.name}] fingerprint {fingerprint[:12]} (changed={changed})")
        return ChangeRecord(
            name=source.name, changed=changed, fingerprint=fingerprint, previous=previous
        )

    def from_pull(self, source: SourceDescriptor, cloned: bool, changes: int) -> ChangeRecord:
        """
        Change record for a git source from its clone/pull result

        Args:
            source: Git source
            cloned: True if the staging clone was just created
            changes: Number of files changed by the pull

        Returns:
            ChangeRecord; a fresh clone always counts as changed
        """
        return ChangeRecord(
            name=source.name,
            changed=cloned or changes > 0,
            fingerprint=str(changes),
        )

    def restore(self, name: str, previous: str | None) -> None:
        """Put back the fingerprint from before a failed sync"""
        if previous is None:
            self.store.delete(name)
        else:
            self.store.set(name, previous)
