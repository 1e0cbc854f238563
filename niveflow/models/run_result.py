"""Models for sync, build and orchestration results"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ChangeRecord(BaseModel):
    """Change decision for one source in one sync cycle"""

    name: str = Field(description="Source name")
    changed: bool = Field(description="Whether the source changed since the last successful sync")
    fingerprint: str | None = Field(
        default=None,
        description="Content fingerprint (local sources) or pull change count (git sources)",
    )
    previous: str | None = Field(default=None, description="Cached fingerprint before this cycle")
    error: str | None = Field(default=None, description="Error message if detection failed")


class SyncResult(BaseModel):
    """Result of synchronizing one source into its staging directory"""

    name: str = Field(description="Source name")
    changed: bool = Field(default=False, description="Whether new content was staged")
    error: str | None = Field(default=None, description="Error message if sync failed")


class BuildStatus(str, Enum):
    """Per-source build decision outcome"""

    BUILT = "built"
    SKIPPED = "skipped"
    FAILED = "failed"


class BuildOutcome(BaseModel):
    """Result of the build step for one source"""

    name: str = Field(description="Source name")
    status: BuildStatus = Field(description="Whether the source was built, skipped or failed")
    output_dir: str | None = Field(default=None, description="Absolute output directory")
    error: str | None = Field(default=None, description="Error message if the build failed")


class RunResult(BaseModel):
    """Result of an orchestration run"""

    success: bool = Field(description="Whether the run succeeded")
    start_time: datetime = Field(description="When the run started")
    end_time: datetime = Field(description="When the run ended")
    duration_seconds: float = Field(description="Duration in seconds")
    error: str | None = Field(default=None, description="Error message if failed")
    syncs: list[SyncResult] = Field(default_factory=list, description="Per-source sync results")
    outcomes: list[BuildOutcome] = Field(
        default_factory=list, description="Per-source build outcomes"
    )

    def names_with_status(self, status: BuildStatus) -> list[str]:
        return [outcome.name for outcome in self.outcomes if outcome.status == status]

    @property
    def built(self) -> list[str]:
        return self.names_with_status(BuildStatus.BUILT)

    @property
    def skipped(self) -> list[str]:
        return self.names_with_status(BuildStatus.SKIPPED)

    @property
    def failed(self) -> list[str]:
        return self.names_with_status(BuildStatus.FAILED)
