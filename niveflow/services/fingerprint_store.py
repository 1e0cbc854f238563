"""Key-value stores for last-known source fingerprints"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class FingerprintStore(ABC):
    """Mapping from source name to its last-known fingerprint"""

    @abstractmethod
    def get(self, name: str) -> str | None:
        """Return the cached fingerprint for a source, or None"""

    @abstractmethod
    def set(self, name: str, fingerprint: str) -> None:
        """Record the fingerprint for a source"""

    @abstractmethod
    def delete(self, name: str) -> None:
        """Forget the fingerprint for a source"""


class InMemoryFingerprintStore(FingerprintStore):
    """Process-local fingerprint cache"""

    def __init__(self) -> None:
        self._fingerprints: dict[str, str] = {}

    def get(self, name: str) -> str | None:
        return self._fingerprints.get(name)

    def set(self, name: str, fingerprint: str) -> None:
        self._fingerprints[name] = fingerprint

    def delete(self, name: str) -> None:
        self._fingerprints.pop(name, None)


class MirroredFingerprintStore(InMemoryFingerprintStore):
    """
    In-memory fingerprint cache mirrored to one marker file per source

    Markers are read lazily on a cold start so that a process restart does not
    force a rebuild of unchanged local sources.
    """

    def __init__(self, marker_dir: str | Path) -> None:
        super().__init__()
        self.marker_dir = Path(marker_dir)

    def marker_path(self, name: str) -> Path:
        return self.marker_dir / f"{name}.fingerprint"

    def get(self, name: str) -> str | None:
        fingerprint = super().get(name)
        if fingerprint is not None:
            return fingerprint

        marker = self.marker_path(name)
        if not marker.exists():
            return None

        try:
            fingerprint = marker.read_text(encoding="utf-8").strip() or None
        except OSError as e:
            logger.warning(f"Failed to read fingerprint marker {marker}: {e}")
            return None

        if fingerprint is not None:
            super().set(name, fingerprint)
        return fingerprint

    def set(self, name: str, fingerprint: str) -> None:
        super().set(name, fingerprint)
        marker = self.marker_path(name)
        try:
            self.marker_dir.mkdir(parents=True, exist_ok=True)
            marker.write_text(fingerprint, encoding="utf-8")
        except OSError as e:
            # The in-memory value still applies for the lifetime of this process
            logger.warning(f"Failed to write fingerprint marker {marker}: {e}")

    def delete(self, name: str) -> None:
        super().delete(name)
        try:
            self.marker_path(name).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove fingerprint marker for {name}: {e}")
