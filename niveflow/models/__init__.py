"""Data models for the docs pipeline"""

from niveflow.models.run_result import (
    BuildOutcome,
    BuildStatus,
    ChangeRecord,
    RunResult,
    SyncResult,
)
from niveflow.models.source import SourceDescriptor, is_local_path
from niveflow.models.sources_config import SourcesConfig

__all__ = [
    "BuildOutcome",
    "BuildStatus",
    "ChangeRecord",
    "RunResult",
    "SyncResult",
    "SourceDescriptor",
    "SourcesConfig",
    "is_local_path",
]
