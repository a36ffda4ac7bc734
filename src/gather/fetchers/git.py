"""Gather git repositories through the ``git`` executable.

A ``//subdir`` suffix is served with a sparse, blob-less clone into a
temporary directory; only the subdirectory is copied to the destination.
Without a subdir the clone lands directly in the destination and keeps its
``.git`` directory.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qs

from gather.core.context import Context
from gather.core.errors import Cancelled, GitError
from gather.core.models import GitMetadata, ProtocolCategory
from gather.core.paths import HomeResolver, expand_tilde
from gather.repo.config import GitSettings

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1

_SCHEME_RE = re.compile(r"[a-zA-Z][a-zA-Z0-9+.\-]*://")
_SCP_RE = re.compile(r"[\w.\-]+@[\w.\-]+:", re.ASCII)
_DRIVE_RE = re.compile(r"[a-zA-Z]:\\")
_SHA_RE = re.compile(r"[0-9a-fA-F]{7,40}")


@dataclass(frozen=True)
class GitSource:
    """A parsed git source: clone URL plus optional ref, subdir and depth."""

    url: str
    ref: str = ""
    subdir: str = ""
    depth: int | None = None


def parse_git_source(raw: str, home_resolver: HomeResolver | None = None) -> GitSource:
    """Parse a git source string into a ``GitSource``.

    Supports:
      git::<anything below>
      https://host/owner/repo.git//sub/dir?ref=v1.2.0&depth=0
      git@host:owner/repo.git
      github.com/owner/repo
      host.tld/owner/repo//sub
      owner/repo                       (GitHub)
      ./local/repo.git  ~/repo.git  file:///srv/repo.git
    """
    src = raw[len("git::"):] if raw.startswith("git::") else raw
    base, _, query = src.partition("?")

    params = parse_qs(query)
    ref = params.get("ref", [""])[-1]
    depth: int | None = None
    depth_raw = params.get("depth", [""])[-1]
    if depth_raw:
        try:
            depth = int(depth_raw)
        except ValueError as exc:
            raise GitError(f"invalid depth in git source: {depth_raw!r}") from exc

    scheme = _SCHEME_RE.match(base)
    idx = base.find("//", scheme.end() if scheme else 1)
    subdir = ""
    if idx != -1:
        base, subdir = base[:idx], base[idx + 2:].strip("/")

    if not base:
        raise GitError(f"cannot parse git source: {raw}")
    return GitSource(url=_clone_url(base, home_resolver), ref=ref, subdir=subdir, depth=depth)


def _clone_url(base: str, home_resolver: HomeResolver | None) -> str:
    if base.startswith("~/"):
        return expand_tilde(base, home_resolver)
    if (
        _SCHEME_RE.match(base)
        or _SCP_RE.match(base)
        or _DRIVE_RE.match(base)
        or base.startswith(("/", "./", "../"))
    ):
        return base

    head, _, rest = base.partition("/")
    if "." in head and rest:
        return f"https://{base}"

    parts = [p for p in base.split("/") if p]
    if len(parts) == 2:
        owner, repo = parts
        if not repo.endswith(".git"):
            repo += ".git"
        return f"https://github.com/{owner}/{repo}"

    raise GitError(f"cannot parse git source: {base}")


class GitGatherer:
    """Clone repositories with the configured git binary."""

    category = ProtocolCategory.GIT

    def __init__(
        self,
        settings: GitSettings | None = None,
        home_resolver: HomeResolver | None = None,
    ) -> None:
        self.settings = settings or GitSettings()
        self.home_resolver = home_resolver

    def gather(self, ctx: Context, source: str, destination: str) -> GitMetadata:
        ctx.check()
        parsed = parse_git_source(source, self.home_resolver)
        dest = Path(expand_tilde(destination, self.home_resolver))
        depth = self.settings.depth if parsed.depth is None else parsed.depth

        if parsed.subdir:
            commit, ref = self._gather_subdir(ctx, parsed, dest, depth)
        else:
            commit, ref = self._gather_repo(ctx, parsed, dest, depth)

        logger.info("Gathered %s@%s -> %s", parsed.url, commit[:12], dest)
        return GitMetadata(
            url=parsed.url,
            commit=commit,
            ref=ref,
            subdir=parsed.subdir,
            destination=str(dest),
        )

    def _gather_repo(self, ctx: Context, parsed: GitSource, dest: Path, depth: int) -> tuple[str, str]:
        created = not dest.exists()
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._clone(ctx, parsed, dest, depth, sparse=False)
            return self._head(ctx, dest), parsed.ref or self._branch(ctx, dest)
        except Cancelled:
            if created:
                shutil.rmtree(dest, ignore_errors=True)
            raise

    def _gather_subdir(self, ctx: Context, parsed: GitSource, dest: Path, depth: int) -> tuple[str, str]:
        with tempfile.TemporaryDirectory() as tmp:
            repo = Path(tmp) / "repo"
            self._clone(ctx, parsed, repo, depth, sparse=True)

            tree = repo / parsed.subdir
            if not tree.exists():
                raise GitError(f"path '{parsed.subdir}' not found in {parsed.url}")

            ctx.check()
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(tree, dest, dirs_exist_ok=True)
            return self._head(ctx, repo), parsed.ref or self._branch(ctx, repo)

    def _clone(self, ctx: Context, parsed: GitSource, target: Path, depth: int, *, sparse: bool) -> None:
        """Clone *parsed* into *target*.

        A ref of 7-40 hex characters is treated as a commit: full clone, then
        ``git checkout <ref>``. Checkout also resolves tags and remote branches,
        so a hex-named branch or tag still lands on the right commit, only
        without the shallow clone.
        """
        pinned = bool(parsed.ref) and _SHA_RE.fullmatch(parsed.ref) is not None

        args = ["clone"]
        if sparse:
            args += ["--filter=blob:none", "--no-checkout"]
        elif pinned:
            args.append("--no-checkout")
        if depth > 0 and not pinned:
            args += ["--depth", str(depth)]
        if parsed.ref and not pinned:
            args += ["--branch", parsed.ref]
        args += [parsed.url, str(target)]
        self._git(ctx, args, failure="git clone failed")

        if sparse:
            self._git(
                ctx,
                ["-C", str(target), "sparse-checkout", "set", parsed.subdir],
                failure="git sparse-checkout failed",
            )
        if sparse or pinned:
            checkout = ["-C", str(target), "checkout"]
            if pinned:
                checkout.append(parsed.ref)
            self._git(ctx, checkout, failure="git checkout failed")

    def _head(self, ctx: Context, repo: Path) -> str:
        return self._git(ctx, ["-C", str(repo), "rev-parse", "HEAD"], failure="git rev-parse failed")

    def _branch(self, ctx: Context, repo: Path) -> str:
        name = self._git(
            ctx,
            ["-C", str(repo), "rev-parse", "--abbrev-ref", "HEAD"],
            failure="git rev-parse failed",
        )
        return "" if name == "HEAD" else name

    def _git(self, ctx: Context, args: list[str], *, failure: str) -> str:
        """Run git, polling *ctx* while it runs. Returns stripped stdout."""
        ctx.check()
        cmd = [self.settings.binary, *args]
        logger.debug("Running %s", " ".join(cmd))
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                env=env,
            )
        except OSError as exc:
            raise GitError(f"cannot run {self.settings.binary}: {exc}") from exc

        while True:
            try:
                stdout, stderr = proc.communicate(timeout=_POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                err = ctx.error()
                if err is not None:
                    proc.kill()
                    proc.communicate()
                    raise err

        if proc.returncode != 0:
            raise GitError(f"{failure}: {stderr.strip()}", stderr=stderr)
        return stdout.strip()
