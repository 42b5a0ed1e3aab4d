import logging
from typing import NoReturn

import click

from ..config import settings
from ..config.settings import TesterConfig
from ..modes import ModeDomain, load_domain, load_known_versions
from ..modes.domain import KnownVersions


def fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


def configure_logging(verbose: bool = False) -> None:
    level_name = "DEBUG" if verbose else settings.LOG_LEVEL
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


def load_config() -> TesterConfig:
    try:
        return TesterConfig.from_env()
    except RuntimeError as exc:
        fail(str(exc))


def load_modes_domain(
    versions_file: str | None, config: TesterConfig
) -> tuple[ModeDomain, KnownVersions | None]:
    """Load the mode domain and the known versions (file option wins over env)."""
    domain = load_domain()
    path = versions_file or config.versions_file
    if not path:
        return domain, None
    try:
        return domain, load_known_versions(path, domain)
    except (OSError, RuntimeError) as exc:
        fail(f"cannot load versions file: {exc}")
