"""CLI entry point: Click command group."""

from __future__ import annotations

import logging

import click

from gather import __version__
from gather.core.env import load_user_env

load_user_env()


def _quick_start(root_name: str) -> str:
    lines = [
        "Quick start:",
        f"  {root_name} classify github.com/owner/repo ./dir https://example.com/f.tgz",
        f"  {root_name} get owner/repo ./checkout",
        f"  {root_name} get https://example.com/archive.tar.gz ./downloads/",
        f"  {root_name} config init",
    ]
    return "\n".join(lines)


class GatherGroup(click.Group):
    """Click group that appends usage examples to help output."""

    def get_help(self, ctx: click.Context) -> str:
        base = super().get_help(ctx)
        root_name = ctx.find_root().info_name or "gather"
        return f"{base}\n\n{_quick_start(root_name)}"


@click.group(cls=GatherGroup)
@click.version_option(__version__, prog_name="gather")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """gather: fetch git, HTTP(S) and local sources.

    The transport is picked from the shape of SOURCE.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# Register all sub-commands on import
from gather.cli import commands as _commands  # noqa: F401, E402
