import json
import shlex
from pathlib import Path

import click

from ..modes import ModeError, expand_all
from ..run import ExecutionCoordinator, GroupCollision, ProgressReporter, SubprocessExecutor
from ..selection import CorpusError, PathFilter, TestSelector, open_corpus
from ..snapshot import Context, MissingContext, SnapshotFormat, SnapshotIOError, write_snapshot
from .common import fail, load_config, load_modes_domain


def _build_context(
    machine: str | None, target: str | None, toolchain: str | None
) -> Context | None:
    if not (machine or target or toolchain):
        return None
    try:
        return Context(machine=machine or "", target=target or "", toolchain=toolchain or "")
    except ValueError as exc:
        fail(f"incomplete context: {exc}")


@click.command("run")
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--executor",
    "executor_command",
    required=True,
    help="Command compiling and running one test: <command> <test path> <mode>",
)
@click.option("--mode", "-m", "mode_strings", multiple=True, help="Mode string (repeatable)")
@click.option("--path", "-p", "patterns", multiple=True, help="Glob or prefix filter (repeatable)")
@click.option(
    "--parallelism", "-j", type=click.IntRange(min=1), default=None, help="Worker threads"
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-item timeout in seconds",
)
@click.option(
    "--fail-fast", type=click.IntRange(min=1), default=None, help="Cancel after N failed items"
)
@click.option(
    "--versions-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML mapping language -> known versions",
)
@click.option(
    "--output", "-o", type=click.Path(path_type=Path), default=None, help="Snapshot path"
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice([f.value for f in SnapshotFormat]),
    default=SnapshotFormat.JSON.value,
    show_default=True,
    help="Snapshot format (lnt writes a directory and needs --machine/--target/--toolchain)",
)
@click.option("--machine", default=None, help="Machine name for the run context")
@click.option("--target", default=None, help="Target name for the run context")
@click.option("--toolchain", default=None, help="Toolchain name for the run context")
@click.option(
    "--summary", type=click.Path(path_type=Path), default=None, help="Write run summary JSON"
)
@click.option("--dry-run", is_flag=True, help="Only print the selected items")
@click.option("--verbose", "-v", is_flag=True, help="Print one line per item")
@click.option(
    "--progress/--no-progress",
    default=True,
    show_default=True,
    help="Show a progress bar while running",
)
def run(
    root: Path,
    executor_command: str,
    mode_strings: tuple[str, ...],
    patterns: tuple[str, ...],
    parallelism: int | None,
    timeout: float | None,
    fail_fast: int | None,
    versions_file: str | None,
    output: Path | None,
    fmt: str,
    machine: str | None,
    target: str | None,
    toolchain: str | None,
    summary: Path | None,
    dry_run: bool,
    verbose: bool,
    progress: bool,
):
    """Run the tests under ROOT in every selected mode."""
    config = load_config()
    domain, known = load_modes_domain(versions_file, config)
    context = _build_context(machine, target, toolchain)
    snapshot_format = SnapshotFormat(fmt)
    if output is not None and snapshot_format is SnapshotFormat.LNT and context is None:
        fail(str(MissingContext()))

    try:
        modes = expand_all(mode_strings, domain, known)
    except ModeError as exc:
        fail(str(exc))

    try:
        selection = TestSelector(open_corpus(root, domain)).select(
            root, PathFilter.of(*patterns), modes
        )
    except CorpusError as exc:
        fail(str(exc))

    if dry_run:
        for group in selection.groups:
            click.echo(group)
        click.echo(f"{len(selection.items)} items, {len(selection.skipped)} tests skipped")
        return
    if selection.is_empty:
        click.echo("No matching tests.")
        return

    reporter = ProgressReporter(len(selection.items), verbose=verbose) if progress else None
    coordinator = ExecutionCoordinator(
        SubprocessExecutor(
            shlex.split(executor_command),
            root,
            config.item_timeout if timeout is None else timeout,
        ),
        config.parallelism if parallelism is None else parallelism,
        fail_fast=fail_fast,
        on_result=reporter,
    )
    try:
        result = coordinator.run(selection, context)
    except GroupCollision as exc:
        fail(str(exc))
    finally:
        if reporter is not None:
            reporter.finish()

    click.echo(
        f"{result.total} items: {result.passed} passed, {result.failed} failed, "
        f"{result.invalid} invalid, {result.skipped} skipped ({result.elapsed_s:.1f}s)"
    )
    if result.interrupted:
        click.echo("Interrupted: results cover the items completed so far.", err=True)

    if output is not None:
        try:
            written = write_snapshot(result.run, output, snapshot_format)
        except (MissingContext, SnapshotIOError) as exc:
            fail(str(exc))
        click.echo(f"Snapshot written: {written[0] if len(written) == 1 else output}")
    if summary is not None:
        summary.parent.mkdir(parents=True, exist_ok=True)
        summary.write_text(json.dumps(result.to_dict(), indent=2) + "\n", encoding="utf-8")

    if result.has_failures or result.interrupted:
        raise SystemExit(1)
