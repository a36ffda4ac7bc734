"""Terminal UI utilities: spinner and metadata rendering."""

from __future__ import annotations

import contextlib
import itertools
import sys
import threading

from gather.core.models import FileMetadata, GitMetadata, HTTPMetadata, Metadata


@contextlib.contextmanager
def spinner(text: str):
    """Show an inline spinner with *text* on stderr until the block exits."""
    frames = itertools.cycle(["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"])
    done = threading.Event()
    interactive = sys.stderr.isatty()

    def _draw() -> None:
        while not done.is_set():
            sys.stderr.write(f"\r{next(frames)} {text}\033[K")
            sys.stderr.flush()
            done.wait(0.08)
        sys.stderr.write("\r\033[K")
        sys.stderr.flush()

    t = threading.Thread(target=_draw, daemon=True)
    if interactive:
        t.start()
    try:
        yield
    finally:
        done.set()
        if interactive:
            t.join()


def summarize(meta: Metadata) -> list[str]:
    """Human-readable lines describing a gather result."""
    match meta:
        case GitMetadata():
            lines = [f"✔ Cloned {meta.url}", f"  commit {meta.commit}"]
            if meta.ref:
                lines.append(f"  ref    {meta.ref}")
            if meta.subdir:
                lines.append(f"  subdir {meta.subdir}")
        case HTTPMetadata():
            lines = [
                f"✔ Downloaded {meta.final_url} ({meta.status_code})",
                f"  {meta.content_length} bytes {meta.content_type}".rstrip(),
                f"  sha256 {meta.sha256}",
            ]
        case FileMetadata():
            lines = [
                f"✔ Copied {meta.path}",
                f"  {meta.file_count} file(s), {meta.size} bytes",
                f"  sha256 {meta.sha256}",
            ]
        case _:
            lines = [f"✔ Gathered ({meta.category})"]
    dest = meta.describe().get("destination")
    if dest:
        lines.append(f"  → {dest}")
    return lines
