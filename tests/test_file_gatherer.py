import hashlib
from pathlib import Path

import pytest

from gather.core.context import Context
from gather.core.errors import Cancelled, FileSourceError
from gather.core.models import FileMetadata, ProtocolCategory
from gather.fetchers import file as file_fetcher
from gather.fetchers.file import FileGatherer, source_path


def _tree(root: Path) -> Path:
    (root / "pkg" / "sub").mkdir(parents=True)
    (root / "pkg" / "README.md").write_text("# readme\n")
    (root / "pkg" / "sub" / "data.bin").write_bytes(b"\x00\x01\x02")
    return root / "pkg"


def test_source_path_strips_prefixes(tmp_path: Path, fake_home):
    assert source_path(f"file::{tmp_path}") == tmp_path.resolve()
    assert source_path(f"file://{tmp_path}") == tmp_path.resolve()
    assert source_path("~/x", fake_home) == Path(fake_home(), "x").resolve()


def test_copy_single_file(tmp_path: Path):
    src = tmp_path / "note.txt"
    src.write_text("hello")
    dest = tmp_path / "a" / "b" / "copy.txt"

    meta = FileGatherer().gather(Context.background(), str(src), str(dest))

    assert dest.read_text() == "hello"
    assert isinstance(meta, FileMetadata)
    assert meta.category is ProtocolCategory.FILE
    assert meta.path == str(src.resolve())
    assert meta.file_count == 1
    assert meta.size == 5
    assert meta.sha256 == hashlib.sha256(b"hello").hexdigest()
    assert meta.pinned_url() == f"file::{src.resolve()}"


def test_copy_file_into_existing_directory(tmp_path: Path):
    src = tmp_path / "note.txt"
    src.write_text("hello")
    target_dir = tmp_path / "inbox"
    target_dir.mkdir()

    meta = FileGatherer().gather(Context.background(), f"file::{src}", str(target_dir))

    assert (target_dir / "note.txt").read_text() == "hello"
    assert meta.destination == str(target_dir / "note.txt")


def test_copy_directory(tmp_path: Path):
    src = _tree(tmp_path / "src")
    dest = tmp_path / "out" / "pkg"

    meta = FileGatherer().gather(Context.background(), str(src), str(dest))

    assert (dest / "README.md").read_text() == "# readme\n"
    assert (dest / "sub" / "data.bin").read_bytes() == b"\x00\x01\x02"
    assert meta.file_count == 2
    assert meta.size == len("# readme\n") + 3
    assert len(meta.sha256) == 64
    assert meta.describe()["protocol"] == "FileURI"


def test_directory_digest_is_stable(tmp_path: Path):
    src = _tree(tmp_path / "src")
    first = FileGatherer().gather(Context.background(), str(src), str(tmp_path / "one"))
    second = FileGatherer().gather(Context.background(), str(src), str(tmp_path / "two"))
    assert first.sha256 == second.sha256


def test_directory_digest_streams_file_contents(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(file_fetcher, "_CHUNK_SIZE", 2)
    src = _tree(tmp_path / "src")

    meta = FileGatherer().gather(Context.background(), str(src), str(tmp_path / "out"))

    expected = hashlib.sha256()
    for rel, body in [("README.md", b"# readme\n"), ("sub/data.bin", b"\x00\x01\x02")]:
        expected.update(rel.encode())
        expected.update(body)
    assert meta.sha256 == expected.hexdigest()
    assert meta.size == 12


def test_missing_source(tmp_path: Path):
    with pytest.raises(FileSourceError, match="source not found"):
        FileGatherer().gather(Context.background(), str(tmp_path / "nope"), str(tmp_path / "d"))


def test_cancelled_before_start(tmp_path: Path):
    src = _tree(tmp_path / "src")
    ctx = Context.background().with_cancel()
    ctx.cancel()

    with pytest.raises(Cancelled):
        FileGatherer().gather(ctx, str(src), str(tmp_path / "out"))
    assert not (tmp_path / "out").exists()


def test_cancelled_mid_copy_removes_partial_tree(tmp_path: Path, monkeypatch):
    src = _tree(tmp_path / "src")
    ctx = Context.background().with_cancel()
    copied = []

    import shutil

    real_copy2 = shutil.copy2

    def copy_then_cancel(s, d, **kwargs):
        copied.append(s)
        result = real_copy2(s, d, **kwargs)
        ctx.cancel("halfway")
        return result

    monkeypatch.setattr(shutil, "copy2", copy_then_cancel)

    with pytest.raises(Cancelled, match="halfway"):
        FileGatherer().gather(ctx, str(src), str(tmp_path / "out"))
    assert len(copied) == 1
    assert not (tmp_path / "out").exists()
