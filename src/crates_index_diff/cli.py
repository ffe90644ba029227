"""Click CLI entry point for crates-index-diff."""

import contextlib
import dataclasses
import json
import logging
import signal
import sys
from collections.abc import Generator
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from crates_index_diff.config import Config, load_config, save_config
from crates_index_diff.errors import IndexDiffError
from crates_index_diff.index import Index
from crates_index_diff.models import PackageVersion

console = Console()


def _handle_sigint(_sig: int, _frame: object) -> None:
    """Handle Ctrl+C gracefully."""
    click.echo("\nInterrupted. Shutting down...", err=True)
    sys.exit(130)


signal.signal(signal.SIGINT, _handle_sigint)

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    """Configure logging level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


@contextlib.contextmanager
def _reporting_errors() -> Generator[None, None, None]:
    """Turn library errors into a one-line message and exit status 1."""
    try:
        yield
    except IndexDiffError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _open_index(config: Config) -> Index:
    """Open the configured repository, cloning it on first use."""
    return Index.from_path_or_cloned(config=config)


def _print_versions(versions: list[PackageVersion], as_json: bool) -> None:
    """Print versions as JSON lines or as a table."""
    if as_json:
        for version in versions:
            click.echo(json.dumps(version.to_dict(), separators=(",", ":")))
        return

    if not versions:
        click.echo("No new versions.")
        return

    table = Table(title="Published versions")
    table.add_column("Crate", style="bold")
    table.add_column("Version")
    table.add_column("Deps", justify="right")
    table.add_column("Checksum", style="dim")
    table.add_column("Yanked")

    for version in versions:
        yanked = Text("yes", style="red") if version.yanked else Text("no", style="dim")
        table.add_row(
            version.name,
            version.version,
            str(len(version.deps)),
            version.checksum[:12],
            yanked,
        )

    console.print(table)
    console.print(f"[bold]{len(versions)}[/bold] version(s).")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Config file. Defaults to ~/.crates-index-diff/config.json.")
@click.option("--repo", "repo_path", type=click.Path(path_type=Path), default=None,
              help="Index repository path. Overrides the config file.")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Path | None,
         repo_path: Path | None) -> None:
    """crates-index-diff: report crate versions newly published to the crates.io index."""
    _setup_logging(verbose)
    config = load_config(config_path)
    if repo_path is not None:
        config.repository_path = repo_path.expanduser()
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = config


# ── Change commands ─────────────────────────────────────────────────────


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print one JSON record per line.")
@click.pass_context
def fetch(ctx: click.Context, as_json: bool) -> None:
    """Fetch the remote, print new versions and remember what was seen."""
    with _reporting_errors():
        index = _open_index(ctx.obj["config"])
        versions = index.fetch_changes()
    _print_versions(versions, as_json)


@main.command()
@click.option("--from", "from_rev", help="Start revision. Defaults to the last-seen reference.")
@click.option("--json", "as_json", is_flag=True, help="Print one JSON record per line.")
@click.pass_context
def peek(ctx: click.Context, from_rev: str | None, as_json: bool) -> None:
    """Fetch the remote and print new versions without remembering them."""
    with _reporting_errors():
        index = _open_index(ctx.obj["config"])
        versions, to_oid = index.peek_changes(from_rev=from_rev)
    _print_versions(versions, as_json)
    if not as_json:
        click.echo(f"Up to {to_oid}", err=True)


@main.command()
@click.argument("from_rev")
@click.argument("to_rev")
@click.option("--json", "as_json", is_flag=True, help="Print one JSON record per line.")
@click.pass_context
def changes(ctx: click.Context, from_rev: str, to_rev: str, as_json: bool) -> None:
    """Print the versions added between two revisions (commits or trees)."""
    with _reporting_errors():
        index = _open_index(ctx.obj["config"])
        versions = index.changes(from_rev, to_rev)
    _print_versions(versions, as_json)


# ── Checkpoint commands ─────────────────────────────────────────────────


@main.group()
def checkpoint() -> None:
    """Inspect or move the last-seen reference."""


@checkpoint.command("show")
@click.pass_context
def checkpoint_show(ctx: click.Context) -> None:
    """Print the commit the last-seen reference points at."""
    with _reporting_errors():
        index = _open_index(ctx.obj["config"])
        seen = index.last_seen_reference()
    if seen is None:
        click.echo(f"{index.seen_ref_name} is not set.", err=True)
        sys.exit(1)
    click.echo(seen)


@checkpoint.command("set")
@click.argument("point")
@click.pass_context
def checkpoint_set(ctx: click.Context, point: str) -> None:
    """Point the last-seen reference at POINT (any revision)."""
    with _reporting_errors():
        index = _open_index(ctx.obj["config"])
        oid = index.set_last_seen_reference(point)
    click.echo(f"{index.seen_ref_name} -> {oid}")


# ── Config commands ─────────────────────────────────────────────────────

_CONFIG_KEYS = [f.name for f in dataclasses.fields(Config)]


@main.group("config")
def config_group() -> None:
    """Show or change the configuration file."""


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the effective configuration."""
    config: Config = ctx.obj["config"]
    table = Table(title="crates-index-diff config", show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key in _CONFIG_KEYS:
        table.add_row(key, str(getattr(config, key)))
    console.print(table)


@config_group.command("set")
@click.argument("key", type=click.Choice(_CONFIG_KEYS))
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Write KEY=VALUE to the configuration file."""
    config_path: Path | None = ctx.obj["config_path"]
    # start from the file as written, without --repo
    config = load_config(config_path)
    if key == "repository_path":
        setattr(config, key, Path(value).expanduser())
    else:
        setattr(config, key, value)
    save_config(config, config_path)
    click.echo(f"{key} = {getattr(config, key)}")


# ── Status command ──────────────────────────────────────────────────────


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the configured repository and its last-seen reference."""
    config: Config = ctx.obj["config"]

    if not config.repository_path.exists():
        click.echo("Repository not found. Run 'crates-index-diff fetch' to clone it.")
        return

    with _reporting_errors():
        index = _open_index(config)
        seen = index.last_seen_reference()

    table = Table(title="crates-index-diff status", show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Repository", str(index.repository_path))
    table.add_row("Remote", f"{config.remote_name} ({config.repository_url})")
    table.add_row("Branch", config.remote_branch_ref)
    table.add_row("Last-seen ref", config.seen_ref_name)
    table.add_row("Last seen", seen or "never")
    console.print(table)
