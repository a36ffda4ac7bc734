"""Load ``GATHER_*`` settings from user env files."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from gather.core import paths

logger = logging.getLogger(__name__)

ENV_PREFIX = "GATHER_"

_USER_ENV_LOADED = False


def load_user_env() -> None:
    """Apply env files once per process; variables already set win."""
    global _USER_ENV_LOADED
    if _USER_ENV_LOADED:
        return

    for env_file in env_files():
        if env_file.is_file():
            applied = apply_env_file(env_file)
            logger.debug("Loaded %s from %s", ", ".join(applied) or "nothing", env_file)

    _USER_ENV_LOADED = True


def env_files() -> list[Path]:
    """``$GATHER_ENV_FILE`` first, then ``env`` and ``.env`` under the gather home."""
    home = paths.gather_home()
    files = [home / paths.ENV_FILE, home / ".env"]
    override = os.environ.get("GATHER_ENV_FILE", "").strip()
    if override:
        files.insert(0, Path(override).expanduser())
    return files


def apply_env_file(path: Path) -> list[str]:
    """Set unset ``GATHER_*`` variables from ``KEY=VALUE`` lines in *path*.

    Blank lines, ``#`` comments and keys outside the ``GATHER_`` namespace
    are skipped. Returns the names that were set.
    """
    applied: list[str] = []
    for line in path.read_text().splitlines():
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key.startswith(ENV_PREFIX) or key in os.environ:
            continue
        os.environ[key] = value.strip()
        applied.append(key)
    return applied
