import click
from dotenv import load_dotenv

from .. import __version__
from .common import configure_logging
from .compare import compare
from .modes import modes
from .run import run


@click.group()
@click.version_option(__version__, prog_name="compiler-tester")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Integration and benchmark tool for compiler toolchains."""
    load_dotenv()
    configure_logging(debug)


main.add_command(modes)
main.add_command(run)
main.add_command(compare)


if __name__ == "__main__":
    main()
