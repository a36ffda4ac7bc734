"""Repository for the user settings file (config.toml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError

from gather import __version__
from gather.core import paths
from gather.core.errors import ConfigError

DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_GIT_DEPTH = 1


@dataclass(frozen=True)
class HTTPSettings:
    """Mirrors the [http] table."""

    timeout: float = DEFAULT_HTTP_TIMEOUT
    follow_redirects: bool = True
    user_agent: str = f"gather/{__version__}"
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass(frozen=True)
class GitSettings:
    """Mirrors the [git] table. A depth of 0 means full history."""

    binary: str = "git"
    depth: int = DEFAULT_GIT_DEPTH


@dataclass(frozen=True)
class Settings:
    """Root settings object for config.toml."""

    http: HTTPSettings = field(default_factory=HTTPSettings)
    git: GitSettings = field(default_factory=GitSettings)


def create_default() -> Settings:
    return Settings()


# ── Serialization ───────────────────────────────────────────────────


def dump(settings: Settings) -> str:
    """Serialize settings to a TOML string."""
    doc = tomlkit.document()
    doc.add(tomlkit.comment("gather configuration"))
    doc.add(tomlkit.nl())

    http = tomlkit.table()
    http.add("timeout", settings.http.timeout)
    http.add("follow_redirects", settings.http.follow_redirects)
    http.add("user_agent", settings.http.user_agent)
    http.add("chunk_size", settings.http.chunk_size)
    doc.add("http", http)

    git = tomlkit.table()
    git.add("binary", settings.git.binary)
    git.add("depth", settings.git.depth)
    doc.add("git", git)

    return tomlkit.dumps(doc)


def loads(text: str) -> Settings:
    """Deserialize TOML text; absent keys keep their defaults."""
    try:
        raw = tomlkit.loads(text)
    except TOMLKitError as exc:
        raise ConfigError(f"invalid config: {exc}") from exc

    http_raw = raw.get("http", {})
    git_raw = raw.get("git", {})
    defaults_http = HTTPSettings()
    defaults_git = GitSettings()

    try:
        return Settings(
            http=HTTPSettings(
                timeout=float(http_raw.get("timeout", defaults_http.timeout)),
                follow_redirects=bool(http_raw.get("follow_redirects", defaults_http.follow_redirects)),
                user_agent=str(http_raw.get("user_agent", defaults_http.user_agent)),
                chunk_size=int(http_raw.get("chunk_size", defaults_http.chunk_size)),
            ),
            git=GitSettings(
                binary=str(git_raw.get("binary", defaults_git.binary)),
                depth=int(git_raw.get("depth", defaults_git.depth)),
            ),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid config value: {exc}") from exc


def load(path: Path) -> Settings:
    """Read settings from *path*; a missing file yields defaults."""
    if not path.exists():
        return create_default()
    return loads(path.read_text())


def save(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump(settings))


# ── Effective settings ──────────────────────────────────────────────


def apply_env(settings: Settings) -> Settings:
    """Overlay GATHER_* environment variables on *settings*."""
    http = settings.http
    git = settings.git

    timeout = os.environ.get("GATHER_HTTP_TIMEOUT", "").strip()
    if timeout:
        http = replace(http, timeout=_parse_number("GATHER_HTTP_TIMEOUT", timeout, float))

    binary = os.environ.get("GATHER_GIT_BINARY", "").strip()
    if binary:
        git = replace(git, binary=binary)

    depth = os.environ.get("GATHER_GIT_DEPTH", "").strip()
    if depth:
        git = replace(git, depth=_parse_number("GATHER_GIT_DEPTH", depth, int))

    return Settings(http=http, git=git)


def load_settings(path: Path | None = None) -> Settings:
    """File settings with environment overrides applied."""
    return apply_env(load(path or paths.config_path()))


def _parse_number(name: str, value: str, kind: type):
    try:
        return kind(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
