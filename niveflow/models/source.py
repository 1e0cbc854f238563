"""Documentation source descriptor model"""

import re
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_BRANCH = "main"

_DRIVE_LETTER_PATTERN = re.compile(r"^[a-zA-Z]:[\\/]")


def is_local_path(url: str) -> bool:
    """Return True when a source location refers to the local filesystem"""
    return url.startswith(("/", "./", "../", "~")) or bool(_DRIVE_LETTER_PATTERN.match(url))


class SourceDescriptor(BaseModel):
    """One configured documentation source (git repository or local directory)"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Unique name, used as directory segment")
    url: str = Field(min_length=1, description="Git repository URL or local directory path")
    branch: str = Field(default=DEFAULT_BRANCH, description="Branch to track (git sources only)")
    output_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("output_path", "outputPath"),
        description="Output directory for this source (defaults to <output base>/<name>)",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Ensure name can be used as a single directory segment"""
        if v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"Source name must be a plain directory name, got: {v!r}")
        return v

    @field_validator("branch", mode="before")
    @classmethod
    def default_branch(cls, v: str | None) -> str:
        """Fall back to the default branch when none is given"""
        return v or DEFAULT_BRANCH

    @property
    def is_local(self) -> bool:
        return is_local_path(self.url)

    def resolve_local_path(self) -> Path:
        """Absolute path of a local source (~ expanded, relative to the working directory)"""
        return Path(self.url).expanduser().resolve()

    def resolve_output_dir(self, output_base: str | Path) -> Path:
        """Absolute output directory for this source"""
        if self.output_path:
            return Path(self.output_path).expanduser().resolve()
        return (Path(output_base).expanduser() / self.name).resolve()
