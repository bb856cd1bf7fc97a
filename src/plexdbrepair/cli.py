import logging
import os
from typing import Any, Dict, Optional

import click
from rich.logging import RichHandler

from .core import PlexDBRepair, RepairError
from .services.config_loader import ConfigLoader

DEFAULT_CONFIG_FILE = ".plexdbrepair.yml"

# Keys forwarded from the config file to PlexDBRepair.
CONTEXT_KEYS = (
    "backup_root",
    "staging_dir",
    "bare_metal_config_root",
    "service_name",
    "official_image",
    "community_image",
    "default_container_name",
    "log_tail_lines",
    "container_log_since",
    "container_log_tail",
    "health_url",
)


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    return config.get(key, default)


def _load_config(config_path: Optional[str]) -> Dict[str, Any]:
    if config_path is None:
        candidate = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
        config_path = candidate if os.path.exists(candidate) else None

    try:
        return ConfigLoader().load(config_path)
    except RepairError as exc:
        raise click.ClickException(str(exc)) from exc


def _configure_logging(verbose: bool, log_file: Optional[str]):
    logger = logging.getLogger("plexdbrepair")
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


@click.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def main(config, verbose, log_file):
    """Check, repair and rebuild the Plex Media Server library database.

    Run it as a user allowed to stop Plex and change ownership of its files;
    every run parameter is asked for interactively.
    """
    config_values = _load_config(config)
    _configure_logging(
        verbose=bool(_resolve_option(verbose, config_values, "verbose", default=False)),
        log_file=_resolve_option(log_file, config_values, "log_file"),
    )

    options = {key: config_values[key] for key in CONTEXT_KEYS if key in config_values}
    try:
        repair = PlexDBRepair(**options)
    except RepairError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(repair.run())


if __name__ == "__main__":
    main()
