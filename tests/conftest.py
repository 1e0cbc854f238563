"""Shared fixtures: fake bundler, git repositories and documentation trees"""

import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from niveflow.services.build_dispatcher import BuildDispatcher

FAKE_BUNDLER = """\
import pathlib
import sys

args = sys.argv[1:]
out = pathlib.Path(args[args.index("--outDir") + 1])
out.mkdir(parents=True, exist_ok=True)
docs = pathlib.Path("public") / "docs"
staged = sorted(p.name for p in docs.iterdir()) if docs.exists() else []
(out / "index.html").write_text(",".join(staged), encoding="utf-8")
"""

FAILING_BUNDLER = """\
import sys

sys.exit(3)
"""


def write_docs(root: Path, files: dict[str, str]) -> Path:
    """Create a documentation tree from {relative path: content}"""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def site_root(tmp_path):
    """Bundler project root"""
    root = tmp_path / "site"
    (root / "public").mkdir(parents=True)
    return root


@pytest.fixture
def fake_bundler(tmp_path):
    """Command list for a bundler that writes index.html listing the staged docs"""
    script = tmp_path / "fake_bundler.py"
    script.write_text(FAKE_BUNDLER, encoding="utf-8")
    return [sys.executable, str(script)]


@pytest.fixture
def failing_bundler(tmp_path):
    script = tmp_path / "failing_bundler.py"
    script.write_text(FAILING_BUNDLER, encoding="utf-8")
    return [sys.executable, str(script)]


@pytest.fixture
def dispatcher(tmp_path, site_root, fake_bundler):
    return BuildDispatcher(
        staging_dir=tmp_path / "staging",
        site_root=site_root,
        output_path=tmp_path / "dist",
        build_command=fake_bundler,
        timeout=60,
    )


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(*args: str, cwd: Path) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@pytest.fixture
def git_identity(monkeypatch):
    """Commit identity for git commands run by tests and by the client under test"""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Docs Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "docs@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Docs Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "docs@example.com")


@pytest.fixture
def remote_repo(tmp_path, git_identity):
    """A local repository on branch main, addressed through a file:// URL"""
    repo = tmp_path / "remote"
    repo.mkdir()
    git("init", cwd=repo)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=repo)
    write_docs(repo, {"README.md": "# Docs\n", "meta.json": '{"title": "Remote"}'})
    git("add", ".", cwd=repo)
    git("commit", "-m", "initial", cwd=repo)
    return repo


def commit_file(repo: Path, relative: str, content: str) -> None:
    write_docs(repo, {relative: content})
    git("add", ".", cwd=repo)
    git("commit", "-m", f"update {relative}", cwd=repo)
