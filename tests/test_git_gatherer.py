import os
import shutil
import subprocess
from pathlib import Path

import pytest

from gather.core.context import Context
from gather.core.errors import Cancelled, GitError
from gather.core.models import GitMetadata, ProtocolCategory
from gather.fetchers.git import GitGatherer, GitSource, parse_git_source
from gather.repo.config import GitSettings

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


# ── Source parsing ──────────────────────────────────────────────────


@pytest.mark.parametrize("raw, expected", [
    ("owner/repo", GitSource("https://github.com/owner/repo.git")),
    ("owner/repo.git", GitSource("https://github.com/owner/repo.git")),
    (
        "github.com/owner/repo//skills/x?ref=dev",
        GitSource("https://github.com/owner/repo", ref="dev", subdir="skills/x"),
    ),
    (
        "git::https://example.com/o/r.git//sub/?ref=v1&depth=0",
        GitSource("https://example.com/o/r.git", ref="v1", subdir="sub", depth=0),
    ),
    ("git@github.com:o/r.git", GitSource("git@github.com:o/r.git")),
    ("git@github.com:o/r.git//docs", GitSource("git@github.com:o/r.git", subdir="docs")),
    ("example.com/o/r//sub", GitSource("https://example.com/o/r", subdir="sub")),
    ("/srv/repo.git//sub", GitSource("/srv/repo.git", subdir="sub")),
    ("file:///srv/repo.git", GitSource("file:///srv/repo.git")),
    ("ssh://git@host/o/r.git?ref=abc1234", GitSource("ssh://git@host/o/r.git", ref="abc1234")),
])
def test_parse_git_source(raw, expected):
    assert parse_git_source(raw) == expected


def test_parse_git_source_expands_tilde(fake_home):
    parsed = parse_git_source("~/repos/app.git", fake_home)
    assert parsed.url == os.path.join(fake_home(), "repos", "app.git")


@pytest.mark.parametrize("raw", ["a/b/c", "git::", "owner/repo?depth=deep"])
def test_parse_git_source_rejects(raw):
    with pytest.raises(GitError):
        parse_git_source(raw)


def test_pinned_url():
    meta = GitMetadata(url="https://example.com/o/r.git", commit="abc", subdir="docs")
    assert meta.pinned_url() == "git::https://example.com/o/r.git//docs?ref=abc"
    assert meta.category is ProtocolCategory.GIT


# ── Cloning from a local origin ─────────────────────────────────────


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), "-c", "commit.gpgsign=false", *args],
        check=True, capture_output=True, text=True,
    )
    return result.stdout.strip()


@pytest.fixture
def origin(tmp_path: Path):
    """A local repository with two commits on main and a v1 tag on the first."""
    repo = tmp_path / "origin"
    repo.mkdir()
    _git(repo, "init", "-b", "main")
    _git(repo, "config", "user.email", "dev@example.com")
    _git(repo, "config", "user.name", "Dev")
    (repo / "README.md").write_text("first\n")
    (repo / "docs").mkdir()
    (repo / "docs" / "guide.md").write_text("guide\n")
    _git(repo, "add", ".")
    _git(repo, "commit", "-m", "first")
    _git(repo, "tag", "v1")
    first = _git(repo, "rev-parse", "HEAD")
    (repo / "README.md").write_text("second\n")
    _git(repo, "commit", "-am", "second")
    second = _git(repo, "rev-parse", "HEAD")
    return {"path": repo, "url": f"file://{repo}", "first": first, "second": second}


@requires_git
def test_clone_whole_repository(origin, tmp_path: Path):
    dest = tmp_path / "work" / "checkout"

    meta = GitGatherer().gather(Context.background(), origin["url"], str(dest))

    assert isinstance(meta, GitMetadata)
    assert meta.commit == origin["second"]
    assert meta.ref == "main"
    assert meta.url == origin["url"]
    assert (dest / "README.md").read_text() == "second\n"
    assert (dest / ".git").exists()


@requires_git
def test_clone_tag(origin, tmp_path: Path):
    dest = tmp_path / "tagged"
    meta = GitGatherer().gather(Context.background(), f"git::{origin['url']}?ref=v1", str(dest))
    assert meta.commit == origin["first"]
    assert meta.ref == "v1"
    assert (dest / "README.md").read_text() == "first\n"


@requires_git
def test_clone_pinned_commit(origin, tmp_path: Path):
    dest = tmp_path / "pinned"
    meta = GitGatherer().gather(
        Context.background(), f"{origin['url']}?ref={origin['first']}", str(dest)
    )
    assert meta.commit == origin["first"]
    assert (dest / "README.md").read_text() == "first\n"


@requires_git
def test_clone_subdir_only(origin, tmp_path: Path):
    dest = tmp_path / "docs-only"

    meta = GitGatherer().gather(Context.background(), f"git::{origin['url']}//docs", str(dest))

    assert meta.subdir == "docs"
    assert meta.commit == origin["second"]
    assert (dest / "guide.md").read_text() == "guide\n"
    assert not (dest / "README.md").exists()
    assert not (dest / ".git").exists()


@requires_git
def test_missing_subdir(origin, tmp_path: Path):
    with pytest.raises(GitError, match="not found"):
        GitGatherer().gather(Context.background(), f"{origin['url']}//nope", str(tmp_path / "d"))


@requires_git
def test_clone_failure_carries_stderr(tmp_path: Path):
    with pytest.raises(GitError, match="git clone failed") as excinfo:
        GitGatherer().gather(Context.background(), f"file://{tmp_path}/absent.git", str(tmp_path / "d"))
    assert excinfo.value.stderr
    assert excinfo.value.category is ProtocolCategory.GIT


def test_missing_binary(tmp_path: Path):
    gatherer = GitGatherer(GitSettings(binary="definitely-not-a-git-binary"))
    with pytest.raises(GitError, match="cannot run"):
        gatherer.gather(Context.background(), "owner/repo", str(tmp_path / "d"))


def test_cancelled_context_runs_nothing(tmp_path: Path):
    ctx = Context.background().with_cancel()
    ctx.cancel()
    gatherer = GitGatherer(GitSettings(binary="definitely-not-a-git-binary"))
    with pytest.raises(Cancelled):
        gatherer.gather(ctx, "owner/repo", str(tmp_path / "d"))
    assert not (tmp_path / "d").exists()


@requires_git
@pytest.mark.parametrize("name, kind", [("cafebabe", "branch"), ("2024010", "tag")])
def test_hex_named_ref_resolves_by_name(origin, tmp_path: Path, name, kind):
    _git(origin["path"], kind, name, origin["first"])
    dest = tmp_path / name

    meta = GitGatherer().gather(Context.background(), f"{origin['url']}?ref={name}", str(dest))

    assert meta.commit == origin["first"]
    assert meta.ref == name
    assert (dest / "README.md").read_text() == "first\n"
