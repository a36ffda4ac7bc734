"""CLI commands: get, classify, config."""

from __future__ import annotations

import json

import click

from gather.cli import cli
from gather.cli.ui import spinner, summarize
from gather.core import paths
from gather.core.context import Context
from gather.core.errors import GatherError


# ── get ─────────────────────────────────────────────────────────────


@cli.command()
@click.argument("source")
@click.argument("destination")
@click.option("--force", is_flag=True, help="Gather even if DESTINATION already exists.")
@click.option(
    "--timeout", type=click.FloatRange(min=0, min_open=True), default=None,
    help="Abort after this many seconds.",
)
@click.option("--json", "as_json", is_flag=True, help="Print metadata as JSON.")
def get(source: str, destination: str, force: bool, timeout: float | None, as_json: bool) -> None:
    """Fetch SOURCE into DESTINATION.

    SOURCE can be:

    \b
      ./path, /path, ~/path, file://…   Local file or directory
      owner/repo, github.com/o/r        Git repository (GitHub)
      https://host/o/r.git//sub?ref=v1  Git repository, subdir, ref
      https://host/file.tar.gz          HTTP(S) download
      git::… / file::… / http::…        Force a transport
    """
    from gather import fetchers

    ctx = Context.background()
    if timeout:
        ctx = ctx.with_timeout(timeout)

    try:
        with spinner(f"Gathering {source}…"):
            meta = fetchers.gather(ctx, source, destination, no_clobber=not force)
    except GatherError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(json.dumps(meta.describe(), indent=2))
        return
    for line in summarize(meta):
        click.echo(line)


# ── classify ────────────────────────────────────────────────────────


@cli.command()
@click.argument("sources", nargs=-1, required=True, metavar="SOURCE...")
def classify(sources: tuple[str, ...]) -> None:
    """Print the transport each SOURCE would be gathered with."""
    from gather.core.uri import classify as classify_source

    failed = 0
    for source in sources:
        result = classify_source(source)
        if result.ok:
            click.echo(f"{result.category}\t{source}")
        else:
            failed += 1
            click.echo(f"✗ {source}: {result.error}", err=True)

    if failed:
        raise click.ClickException(f"{failed} source(s) could not be classified")


# ── config ──────────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Inspect or create the settings file."""


@config.command("show")
def config_show() -> None:
    """Print effective settings (file plus GATHER_* overrides)."""
    from gather.repo import config as settings_repo

    try:
        settings = settings_repo.load_settings()
    except GatherError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"# {paths.config_path()}")
    click.echo(settings_repo.dump(settings), nl=False)


@config.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing settings file.")
def config_init(force: bool) -> None:
    """Write a settings file with default values."""
    from gather.repo import config as settings_repo

    target = paths.config_path()
    if target.exists() and not force:
        raise click.ClickException(f"Settings file already exists: {target} (use --force)")
    settings_repo.save(settings_repo.create_default(), target)
    click.echo(f"✔ Wrote {target}")
