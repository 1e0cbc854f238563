"""Utility to load sources configuration from YAML file"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from niveflow.config import config
from niveflow.models.sources_config import SourcesConfig

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the configured sources are missing or invalid"""

    pass


def load_sources_config(config_path: str | Path | None = None) -> SourcesConfig:
    """
    Load sources configuration from YAML file

    Falls back to the DOCS_REPOS environment variable when the file does not exist.

    Args:
        config_path: Path to sources.yaml file (default: config.sources_file)

    Returns:
        SourcesConfig object (possibly with no sources)

    Raises:
        ConfigurationError: If config is invalid
    """
    config_path = Path(config_path or config.sources_file)

    if not config_path.exists():
        if config.docs_repos:
            logger.info(
                f"Sources file {config_path} not found, "
                f"using {len(config.docs_repos)} source(s) from DOCS_REPOS"
            )
            try:
                return SourcesConfig(sources=list(config.docs_repos))
            except ValidationError as e:
                raise ConfigurationError(f"Invalid DOCS_REPOS configuration: {e}") from e

        logger.warning(f"Sources file {config_path} not found and DOCS_REPOS is empty")
        return SourcesConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not data:
            logger.warning(f"Sources configuration file is empty: {config_path}")
            return SourcesConfig()

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Sources configuration must be a mapping with a 'sources' list: {config_path}"
            )

        sources_config = SourcesConfig(**data)

        logger.info(f"Loaded sources configuration from {config_path}")
        logger.info(f"  Sources: {len(sources_config.sources)}")

        return sources_config

    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in sources configuration: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"Invalid sources configuration: {e}") from e
