import click

from ..compare import (
    BenchmarkComparator,
    Query,
    QueryError,
    ReportFormat,
    ReportIOError,
    render_report,
    write_report,
)
from ..observability import log_comparison
from ..snapshot import SnapshotIOError
from .common import fail, load_config


@click.command("compare")
@click.argument("reference", type=click.Path(exists=True))
@click.argument("candidate", type=click.Path(exists=True))
@click.option("--tolerance", "-t", type=float, default=None, help="Noise tolerance (0.05 == 5%)")
@click.option("--query-reference", default=None, help="Regex extracting the reference pairing key")
@click.option("--query-candidate", default=None, help="Regex extracting the candidate pairing key")
@click.option(
    "--higher-is-better",
    "higher_is_better",
    multiple=True,
    help="Metric where an increase is an improvement (repeatable)",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice([f.value for f in ReportFormat]),
    default=ReportFormat.TABLE.value,
    show_default=True,
)
@click.option("--limit", "-n", type=click.IntRange(min=0), default=None, help="Entries to show")
@click.option("--output", "-o", default=None, help="Write the report to a file instead of stdout")
@click.option(
    "--fail-threshold",
    type=float,
    default=None,
    help="Exit 1 when a regression exceeds this relative change",
)
def compare(
    reference: str,
    candidate: str,
    tolerance: float | None,
    query_reference: str | None,
    query_candidate: str | None,
    higher_is_better: tuple[str, ...],
    fmt: str,
    limit: int | None,
    output: str | None,
    fail_threshold: float | None,
):
    """Compare CANDIDATE metrics against REFERENCE metrics."""
    config = load_config()
    tolerance = config.tolerance if tolerance is None else tolerance
    threshold = config.fail_threshold if fail_threshold is None else fail_threshold

    try:
        comparator = BenchmarkComparator(
            tolerance=tolerance,
            query=Query.compile(query_reference, query_candidate),
            higher_is_better=higher_is_better,
        )
        report = comparator.compare_paths(reference, candidate)
    except (QueryError, SnapshotIOError, ValueError) as exc:
        fail(str(exc))

    log_comparison(reference, candidate, report.counts())
    if output:
        try:
            path = write_report(report, output, fmt, limit)
        except ReportIOError as exc:
            fail(str(exc))
        click.echo(f"Report written: {path}")
    else:
        click.echo(render_report(report, fmt, limit))

    if threshold is not None and report.exceeds(threshold):
        click.echo(f"Regressions exceed the failure threshold of {threshold * 100:.2f}%", err=True)
        raise SystemExit(1)
