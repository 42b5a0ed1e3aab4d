import click

from ..modes import ModeError, expand_all, parse_mode, render_mode, total_combinations
from .common import fail, load_config, load_modes_domain


@click.command("modes")
@click.argument("mode_strings", nargs=-1)
@click.option("--expand", "-e", is_flag=True, help="List every concrete mode")
@click.option("--count", "-c", is_flag=True, help="Only print the number of concrete modes")
@click.option(
    "--versions-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML mapping language -> known versions (default: built-in list)",
)
def modes(mode_strings: tuple[str, ...], expand: bool, count: bool, versions_file: str | None):
    """Parse, canonicalize and expand mode strings.

    Without MODE_STRINGS the whole combination space is used.
    """
    config = load_config()
    domain, known = load_modes_domain(versions_file, config)

    try:
        if not expand and not count:
            if not mode_strings:
                click.echo(f"{total_combinations(domain, known)} combinations in total")
                return
            for text in mode_strings:
                click.echo(render_mode(parse_mode(text, domain)) or "*")
            return

        concrete = expand_all(mode_strings, domain, known)
    except ModeError as exc:
        fail(str(exc))

    if count:
        click.echo(str(len(concrete)))
        return
    for mode in concrete:
        click.echo(str(mode))
