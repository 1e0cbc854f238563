"""Centralized configuration using Pydantic BaseSettings"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from niveflow.models.source import SourceDescriptor


class AppConfig(BaseSettings):
    """Application configuration with environment variable support"""

    # Documentation sources
    # Note: sources.yaml takes precedence; DOCS_REPOS is only read when the file is absent
    sources_file: str = Field(
        default="sources.yaml", description="Path to the sources configuration YAML file"
    )
    docs_repos: list[SourceDescriptor] = Field(
        default_factory=list,
        description="Fallback source list as a JSON array (DOCS_REPOS environment variable)",
    )

    # Filesystem layout
    staging_dir: str = Field(
        default="./src/docs-temp", description="Directory holding one staging copy per source"
    )
    state_dir: str = Field(
        default="./.cache/fingerprints",
        description="Directory for on-disk fingerprint markers of local sources",
    )
    site_root: str = Field(
        default=".", description="Bundler project root (its public/ directory receives the docs)"
    )
    output_path: str = Field(
        default="./dist", description="Base output directory; each source builds into <base>/<name>"
    )

    # Bundler
    build_command: str = Field(
        default="pnpm build:only",
        description="Bundler command, run in site_root with --outDir <dir> appended",
    )
    build_timeout_seconds: float = Field(
        default=1800.0, gt=0, description="Maximum duration of a single bundler run"
    )

    # Git
    git_timeout_seconds: float = Field(
        default=300.0, gt=0, description="Maximum duration of a single git clone or pull"
    )

    # Webhook server
    webhook_host: str = Field(default="0.0.0.0", description="Webhook server bind address")
    webhook_port: int = Field(default=3001, ge=1, le=65535, description="Webhook server port")

    # Scheduler
    poll_interval: str = Field(
        default="*/30 * * * *", description="Cron expression for scheduled sync and build"
    )
    initial_build: bool = Field(
        default=True, description="Run a sync and build as soon as the service starts"
    )

    # OpenTelemetry
    otel_enabled: bool = Field(default=False, description="Enable OpenTelemetry logging")
    otel_tracing_enabled: bool = Field(
        default=False, description="Enable OpenTelemetry tracing for orchestration runs"
    )
    otel_endpoint: str = Field(
        default="http://localhost:4318",
        description="OpenTelemetry collector endpoint (HTTP/protobuf)",
    )
    otel_service_name: str = Field(default="niveflow", description="Service name for OpenTelemetry")
    otel_service_version: str = Field(
        default="1.0.0", description="Service version for OpenTelemetry"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Global config instance
config = AppConfig()
