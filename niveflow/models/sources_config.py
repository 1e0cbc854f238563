"""Models for sources configuration (sources.yaml)"""

from pydantic import BaseModel, Field, field_validator

from niveflow.models.source import SourceDescriptor


class SourcesConfig(BaseModel):
    """Complete sources configuration"""

    sources: list[SourceDescriptor] = Field(default_factory=list)

    @field_validator("sources")
    @classmethod
    def validate_unique_names(cls, v: list[SourceDescriptor]) -> list[SourceDescriptor]:
        """Source names are used as directory names and must not collide"""
        seen: set[str] = set()
        for source in v:
            if source.name in seen:
                raise ValueError(f"Duplicate source name: {source.name}")
            seen.add(source.name)
        return v

    @property
    def names(self) -> list[str]:
        return [source.name for source in self.sources]

    def get_source(self, name: str) -> SourceDescriptor | None:
        """Get a source by name"""
        for source in self.sources:
            if source.name == name:
                return source
        return None
