"""Command line entry point: `git-build-tag`."""

import json
import logging
import sys

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import BaseBuildStrategy, LogStyle, RevertBehavior, load_config
from .errors import GENERAL_ERROR, SUCCESS, ConfigError
from .workflow import BatchResult, run_batch

console = Console()


def configure_logging(verbose: bool = False, stream=None) -> None:
    """Send log records to `stream` as bare messages; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        stream=stream or sys.stdout,
        force=True,
    )


def split_references(values: tuple[str, ...]) -> list[str]:
    """
    Flatten `-r` values; each may hold several whitespace-separated references.

    >>> split_references(("repo-a repo-b", "repo-c"))
    ['repo-a', 'repo-b', 'repo-c']

    """
    return [ref for value in values for ref in value.split()]


def render_table(batch: BatchResult) -> None:
    table = Table(title="Build tags")
    table.add_column("Repository")
    table.add_column("Outcome")
    table.add_column("Tag")
    table.add_column("Details")

    for result in batch.results:
        style = "green" if result.ok else "red"
        details = result.reason or ""
        if result.reverted:
            details = details or "reverted"
        table.add_row(
            Text(result.reference),
            Text(result.outcome.value, style=style),
            Text(result.tag or ""),
            Text(details),
        )
    for reference in batch.pending:
        table.add_row(Text(reference), Text("skipped", style="yellow"), "", "not processed")

    console.print(table)
    console.print(
        f"{len(batch.succeeded)} succeeded, {len(batch.failed)} failed, "
        f"{len(batch.pending)} not processed"
    )


def render_json(batch: BatchResult) -> None:
    for result in batch.results:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False))
    click.echo(json.dumps({"summary": batch.to_dict()}, ensure_ascii=False))


def _choice(enum_cls) -> click.Choice:
    return click.Choice([member.value for member in enum_cls])


@click.command(name="git-build-tag")
@click.option("-r", "--repos", "repos", multiple=True,
              help="Space-separated repository URLs or paths (repeatable).")
@click.option("-v", "--version-file", "log_file", default=None,
              help="Version log file name [default: build_version.txt].")
@click.option("-t", "--tag-prefix", "prefix", default=None,
              help="Tag prefix [default: build].")
@click.option("-M", "--major", type=click.IntRange(min=0), default=None,
              help="Major version number [default: 1].")
@click.option("-m", "--minor", type=click.IntRange(min=0), default=None,
              help="Minor version number [default: 0].")
@click.option("-R", "--revert-to", "revert_to", default=None,
              help="Tag to revert to (e.g. 'release-2.1.5').")
@click.option("--strategy", type=_choice(BaseBuildStrategy), default=None,
              help="Base build source: last log entry or highest tag.")
@click.option("--revert-behavior", type=_choice(RevertBehavior), default=None,
              help="After a revert: stop, or continue with a version bump.")
@click.option("--cascade/--no-cascade", "cascade_submodules", default=None,
              help="Tag and push submodules with the same version.")
@click.option("--force-push/--no-force-push", default=None,
              help="Force pushes (overwrites remote state).")
@click.option("--force-tag/--no-force-tag", default=None,
              help="Force the tag push, replacing a remote tag of the same name.")
@click.option("--log-style", type=_choice(LogStyle), default=None,
              help="Line format of the version log.")
@click.option("--create-log/--no-create-log", "create_missing_log", default=None,
              help="Create a missing version log instead of skipping the repository.")
@click.option("--max-probes", type=click.IntRange(min=1), default=None,
              help="Give up after this many taken build numbers.")
@click.option("--remote", default=None,
              help="Remote to sync with and push to; submodules always use origin [default: origin].")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table",
              help="Summary format.")
@click.option("--verbose", is_flag=True, help="Show git commands.")
@click.pass_context
def main(ctx: click.Context, repos, output_format, verbose, **options):
    """Tag one or more git repositories with the next build version.

    \b
    Examples:
        git-build-tag -r "https://example.com/a.git ~/develop/b"
        git-build-tag -r ~/develop/b -t release -M 2 -m 1
        git-build-tag -r ~/develop/b -R build-1.0.3
    """
    references = split_references(repos)
    if not references:
        click.echo("Error: No repositories specified.", err=True)
        click.echo(ctx.get_help(), err=True)
        ctx.exit(GENERAL_ERROR)

    # JSON goes to stdout, so progress moves to stderr
    configure_logging(verbose, stream=sys.stderr if output_format == "json" else sys.stdout)

    try:
        config = load_config(**options)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(e.exit_code)

    batch = run_batch(references, config)

    if output_format == "json":
        render_json(batch)
    else:
        render_table(batch)

    ctx.exit(SUCCESS if batch.ok else GENERAL_ERROR)


if __name__ == "__main__":
    main()
