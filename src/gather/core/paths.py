"""Path constants, tilde expansion and destination checks."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

from gather.core.errors import DestinationExistsError

GATHER_DIR = ".config/gather"
CONFIG_TOML = "config.toml"
ENV_FILE = "env"

HomeResolver = Callable[[], str]


def default_home() -> str:
    """Resolve the current user's home directory."""
    return str(Path.home())


def expand_tilde(path: str, home_resolver: HomeResolver | None = None) -> str:
    """Expand a leading ``~/`` using *home_resolver*.

    The path is returned untouched when it has no ``~/`` prefix or the home
    directory cannot be resolved.
    """
    if not path.startswith("~/"):
        return path
    resolver = home_resolver or default_home
    try:
        home = resolver()
    except (RuntimeError, OSError, KeyError):
        return path
    if not home:
        return path
    return os.path.normpath(os.path.join(home, path[2:]))


def validate_destination(path: str, *, home_resolver: HomeResolver | None = None) -> None:
    """Raise ``DestinationExistsError`` when *path* already exists.

    Probe errors other than "not found" count as "does not exist".
    """
    target = expand_tilde(path, home_resolver)
    try:
        os.stat(target)
    except OSError:
        return
    raise DestinationExistsError(target)


def gather_home() -> Path:
    """Base directory for user-level settings (``$GATHER_HOME`` wins)."""
    home = os.environ.get("GATHER_HOME", "").strip()
    if home:
        return Path(home).expanduser()
    return Path.home() / GATHER_DIR


def config_path() -> Path:
    override = os.environ.get("GATHER_CONFIG", "").strip()
    if override:
        return Path(override).expanduser()
    return gather_home() / CONFIG_TOML
