"""Integration tests for source synchronization (local copies and git clones)"""

import shutil
from unittest.mock import patch

import pytest
from conftest import commit_file, requires_git, write_docs

from niveflow.models.source import SourceDescriptor
from niveflow.services.fingerprint_store import InMemoryFingerprintStore
from niveflow.services.git_client import GitClient
from niveflow.services.source_sync import SourceSynchronizer


@pytest.fixture
def store():
    return InMemoryFingerprintStore()


@pytest.fixture
def synchronizer(tmp_path, store):
    return SourceSynchronizer(
        staging_dir=tmp_path / "staging", store=store, git=GitClient(timeout=60)
    )


@pytest.fixture
def local_docs(tmp_path):
    return write_docs(
        tmp_path / "local-docs",
        {
            "README.md": "# Local\n",
            "guide/intro.md": "intro\n",
            "meta.json": '{"title": "Local"}',
            ".drafts/wip.md": "wip\n",
            "node_modules/pkg/index.md": "pkg\n",
        },
    )


class TestLocalSync:
    """Test synchronization of local directory sources"""

    @pytest.mark.asyncio
    async def test_first_sync_copies_visible_files(self, synchronizer, local_docs):
        source = SourceDescriptor(name="local", url=str(local_docs))

        result = await synchronizer.sync(source)

        staged = synchronizer.staging_path(source)
        assert result.changed is True
        assert result.error is None
        assert (staged / "README.md").read_text(encoding="utf-8") == "# Local\n"
        assert (staged / "guide" / "intro.md").exists()
        assert not (staged / ".drafts").exists()
        assert not (staged / "node_modules").exists()

    @pytest.mark.asyncio
    async def test_second_sync_without_changes_is_noop(self, synchronizer, local_docs):
        source = SourceDescriptor(name="local", url=str(local_docs))
        await synchronizer.sync(source)

        result = await synchronizer.sync(source)

        assert result.changed is False
        assert result.error is None

    @pytest.mark.asyncio
    async def test_modified_file_is_resynced(self, synchronizer, local_docs):
        source = SourceDescriptor(name="local", url=str(local_docs))
        await synchronizer.sync(source)

        (local_docs / "guide" / "intro.md").write_text("rewritten intro\n", encoding="utf-8")
        result = await synchronizer.sync(source)

        assert result.changed is True
        staged = synchronizer.staging_path(source) / "guide" / "intro.md"
        assert staged.read_text(encoding="utf-8") == "rewritten intro\n"

    @pytest.mark.asyncio
    async def test_deleted_file_removed_from_staging(self, synchronizer, local_docs):
        source = SourceDescriptor(name="local", url=str(local_docs))
        await synchronizer.sync(source)

        (local_docs / "guide" / "intro.md").unlink()
        result = await synchronizer.sync(source)

        assert result.changed is True
        assert not (synchronizer.staging_path(source) / "guide" / "intro.md").exists()

    @pytest.mark.asyncio
    async def test_missing_staging_copy_is_recreated(self, synchronizer, local_docs):
        source = SourceDescriptor(name="local", url=str(local_docs))
        await synchronizer.sync(source)
        staged = synchronizer.staging_path(source)
        shutil.rmtree(staged)

        result = await synchronizer.sync(source)

        assert result.changed is True
        assert (staged / "README.md").exists()

    @pytest.mark.asyncio
    async def test_missing_local_path_reports_error(self, synchronizer, tmp_path):
        source = SourceDescriptor(name="gone", url=str(tmp_path / "does-not-exist"))

        result = await synchronizer.sync(source)

        assert result.changed is False
        assert "does not exist" in result.error
        assert not synchronizer.staging_path(source).exists()

    @pytest.mark.asyncio
    async def test_copy_failure_restores_fingerprint(self, synchronizer, store, local_docs):
        source = SourceDescriptor(name="local", url=str(local_docs))

        with patch(
            "niveflow.services.source_sync.replace_tree", side_effect=OSError("disk full")
        ):
            failed = await synchronizer.sync(source)

        assert failed.changed is False
        assert "disk full" in failed.error
        assert store.get("local") is None

        # The next cycle sees the change again and copies it
        retried = await synchronizer.sync(source)
        assert retried.changed is True
        assert (synchronizer.staging_path(source) / "README.md").exists()


@requires_git
class TestGitSync:
    """Test synchronization of git sources"""

    @pytest.mark.asyncio
    async def test_first_sync_clones(self, synchronizer, remote_repo):
        source = SourceDescriptor(name="remote", url=remote_repo.as_uri())

        result = await synchronizer.sync(source)

        staged = synchronizer.staging_path(source)
        assert result.changed is True
        assert (staged / ".git").is_dir()
        assert (staged / "README.md").read_text(encoding="utf-8") == "# Docs\n"
        assert not staged.with_name(".remote.clone").exists()

    @pytest.mark.asyncio
    async def test_pull_without_new_commits_is_unchanged(self, synchronizer, remote_repo):
        source = SourceDescriptor(name="remote", url=remote_repo.as_uri())
        await synchronizer.sync(source)

        result = await synchronizer.sync(source)

        assert result.changed is False
        assert result.error is None

    @pytest.mark.asyncio
    async def test_pull_with_new_commit_is_changed(self, synchronizer, remote_repo):
        source = SourceDescriptor(name="remote", url=remote_repo.as_uri())
        await synchronizer.sync(source)

        commit_file(remote_repo, "guide/new-page.md", "# New page\n")
        result = await synchronizer.sync(source)

        assert result.changed is True
        assert (synchronizer.staging_path(source) / "guide" / "new-page.md").exists()

    @pytest.mark.asyncio
    async def test_non_git_staging_directory_is_recloned(self, synchronizer, remote_repo):
        source = SourceDescriptor(name="remote", url=remote_repo.as_uri())
        write_docs(synchronizer.staging_path(source), {"stale.md": "stale"})

        result = await synchronizer.sync(source)

        staged = synchronizer.staging_path(source)
        assert result.changed is True
        assert (staged / ".git").is_dir()
        assert not (staged / "stale.md").exists()

    @pytest.mark.asyncio
    async def test_unreachable_repository_reports_error(self, synchronizer, tmp_path):
        source = SourceDescriptor(name="broken", url=(tmp_path / "no-such-repo").as_uri())

        result = await synchronizer.sync(source)

        assert result.changed is False
        assert "broken" in result.error
        assert not synchronizer.staging_path(source).exists()
        assert not (synchronizer.staging_dir / ".broken.clone").exists()

    @pytest.mark.asyncio
    async def test_unknown_branch_reports_error(self, synchronizer, remote_repo):
        source = SourceDescriptor(name="remote", url=remote_repo.as_uri(), branch="release")

        result = await synchronizer.sync(source)

        assert result.changed is False
        assert result.error is not None


class TestSyncAll:
    """Test concurrent synchronization of several sources"""

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, synchronizer, local_docs, tmp_path):
        sources = [
            SourceDescriptor(name="good", url=str(local_docs)),
            SourceDescriptor(name="missing", url=str(tmp_path / "missing")),
        ]

        results = await synchronizer.sync_all(sources)

        assert [result.name for result in results] == ["good", "missing"]
        assert results[0].changed is True
        assert results[0].error is None
        assert results[1].changed is False
        assert results[1].error is not None

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_result(self, synchronizer, local_docs):
        source = SourceDescriptor(name="good", url=str(local_docs))

        with patch.object(synchronizer, "_sync_local", side_effect=RuntimeError("boom")):
            results = await synchronizer.sync_all([source])

        assert results[0].changed is False
        assert results[0].error == "boom"
