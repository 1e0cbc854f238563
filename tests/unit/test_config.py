"""Unit tests for configuration"""

from niveflow.config import AppConfig


def test_config_loading_from_environment(monkeypatch):
    """Test that configuration loads paths and timeouts from environment variables"""
    monkeypatch.setenv("STAGING_DIR", "./test_staging")
    monkeypatch.setenv("OUTPUT_PATH", "/var/www/docs")
    monkeypatch.setenv("WEBHOOK_PORT", "4000")
    monkeypatch.setenv("GIT_TIMEOUT_SECONDS", "12.5")

    config = AppConfig(_env_file=None)

    assert config.staging_dir == "./test_staging"
    assert config.output_path == "/var/www/docs"
    assert config.webhook_port == 4000
    assert config.git_timeout_seconds == 12.5


def test_config_defaults(monkeypatch):
    """Test that configuration uses correct defaults"""
    for name in ("SOURCES_FILE", "OUTPUT_PATH", "BUILD_COMMAND", "POLL_INTERVAL", "WEBHOOK_PORT"):
        monkeypatch.delenv(name, raising=False)

    config = AppConfig(_env_file=None)

    assert config.sources_file == "sources.yaml"
    assert config.output_path == "./dist"
    assert config.build_command == "pnpm build:only"
    assert config.poll_interval == "*/30 * * * *"
    assert config.webhook_port == 3001
    assert config.otel_enabled is False


def test_docs_repos_parsed_from_json(monkeypatch):
    """Test that DOCS_REPOS is parsed into typed source descriptors"""
    monkeypatch.setenv(
        "DOCS_REPOS",
        '[{"name": "game-docs", "url": "https://example.com/docs.git"},'
        ' {"name": "notes", "url": "./notes", "outputPath": "./out/notes"}]',
    )

    config = AppConfig(_env_file=None)

    assert [repo.name for repo in config.docs_repos] == ["game-docs", "notes"]
    assert config.docs_repos[0].branch == "main"
    assert config.docs_repos[0].is_local is False
    assert config.docs_repos[1].is_local is True
    assert config.docs_repos[1].output_path == "./out/notes"
