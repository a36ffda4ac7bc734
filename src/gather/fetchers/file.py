"""Gather files and directories from the local filesystem."""

from __future__ import annotations

import hashlib
import logging
import shutil
from pathlib import Path

from gather.core.context import Context
from gather.core.errors import Cancelled, FileSourceError
from gather.core.models import FileMetadata, ProtocolCategory
from gather.core.paths import HomeResolver, expand_tilde

logger = logging.getLogger(__name__)

_PREFIXES = ("file::", "file://")
_CHUNK_SIZE = 1024 * 1024


def source_path(source: str, home_resolver: HomeResolver | None = None) -> Path:
    """Strip ``file::``/``file://`` prefixes and resolve to an absolute path."""
    raw = source
    for prefix in _PREFIXES:
        if raw.startswith(prefix):
            raw = raw[len(prefix):]
    return Path(expand_tilde(raw, home_resolver)).resolve()


def _feed(hasher, path: Path) -> int:
    """Stream *path* into *hasher*; return the number of bytes read."""
    size = 0
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
            size += len(chunk)
    return size


def _hash_file(path: Path) -> str:
    hasher = hashlib.sha256()
    _feed(hasher, path)
    return hasher.hexdigest()


def _hash_tree(root: Path) -> tuple[str, int, int]:
    """Return (digest, file count, total bytes) for every file under *root*."""
    hasher = hashlib.sha256()
    count = 0
    size = 0
    for path in sorted(root.rglob("*")):
        if path.is_file():
            hasher.update(path.relative_to(root).as_posix().encode())
            size += _feed(hasher, path)
            count += 1
    return hasher.hexdigest(), count, size


class FileGatherer:
    """Copy a local file or directory to the destination."""

    category = ProtocolCategory.FILE

    def __init__(self, home_resolver: HomeResolver | None = None) -> None:
        self.home_resolver = home_resolver

    def gather(self, ctx: Context, source: str, destination: str) -> FileMetadata:
        ctx.check()
        src = source_path(source, self.home_resolver)
        if not src.exists():
            raise FileSourceError(f"source not found: {src}")

        dest = Path(expand_tilde(destination, self.home_resolver))

        if src.is_dir():
            return self._copy_dir(ctx, src, dest)
        return self._copy_file(ctx, src, dest)

    def _copy_file(self, ctx: Context, src: Path, dest: Path) -> FileMetadata:
        if dest.is_dir():
            dest = dest / src.name
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.copy2(src, dest)
        except OSError as exc:
            raise FileSourceError(f"copy failed: {exc}") from exc
        ctx.check()

        logger.info("Copied %s -> %s", src, dest)
        return FileMetadata(
            path=str(src),
            file_count=1,
            size=dest.stat().st_size,
            sha256=_hash_file(dest),
            destination=str(dest),
        )

    def _copy_dir(self, ctx: Context, src: Path, dest: Path) -> FileMetadata:
        created = not dest.exists()

        def _copy(s: str, d: str) -> str:
            ctx.check()
            return shutil.copy2(s, d)

        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.copytree(src, dest, copy_function=_copy, dirs_exist_ok=True)
        except Cancelled:
            if created:
                shutil.rmtree(dest, ignore_errors=True)
            raise
        except (OSError, shutil.Error) as exc:
            raise FileSourceError(f"copy failed: {exc}") from exc

        digest, count, size = _hash_tree(src)
        logger.info("Copied %d file(s) from %s -> %s", count, src, dest)
        return FileMetadata(
            path=str(src),
            file_count=count,
            size=size,
            sha256=digest,
            destination=str(dest),
        )
