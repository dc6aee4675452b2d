import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    DEFAULT_BACKUP_DIR,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONFIG_FILE,
    DEFAULT_PULL_TIMEOUT,
    DEFAULT_REGISTRY_TIMEOUT,
)
from .core import DockerUpdater, UpdaterError
from .models import UpdateOptions
from .services.config_loader import ConfigLoader

EPILOG = """\b
Examples:
  docker-update nginx          Update single container
  docker-update -a             Update all running containers
  docker-update -f mysql       Force update container
  docker-update -d wordpress   Dry run update

\b
An update will:
  1. Backup container configuration (unless --skip-backup)
  2. Stop the container
  3. Pull the latest image
  4. Recreate the container with the same configuration
  5. Start the container
"""


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command(context_settings={"help_option_names": ["-h", "--help"]}, epilog=EPILOG)
@click.argument("container_name", required=False)
@click.option("-a", "--all", "all_running", is_flag=True, help="Update all running containers")
@click.option("-f", "--force", is_flag=True, help="Force update even if image is up to date")
@click.option(
    "-l",
    "--list",
    "list_only",
    is_flag=True,
    help="List running containers and whether a newer image is available",
)
@click.option("-d", "--dry-run", is_flag=True, help="Show what would be updated without making changes")
@click.option(
    "-s",
    "--skip-backup",
    is_flag=True,
    default=None,
    help="Skip creating backup of container configuration",
)
@click.option("-q", "--quiet", is_flag=True, default=None, help="Reduce output verbosity")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=None,
    help="Increase output verbosity and show every Docker command issued",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option(
    "--backup-dir",
    required=False,
    type=click.Path(),
    help=f"Directory for configuration backups (default: {DEFAULT_BACKUP_DIR}).",
)
@click.option(
    "--timeout",
    required=False,
    type=float,
    default=None,
    help="Timeout in seconds for each Docker command.",
)
@click.option(
    "--pull-timeout",
    required=False,
    type=float,
    default=None,
    help="Timeout in seconds for image pulls.",
)
@click.option("--log-file", type=click.Path(), help="Path to log file")
def main(
    container_name,
    all_running,
    force,
    list_only,
    dry_run,
    skip_backup,
    quiet,
    verbose,
    config,
    backup_dir,
    timeout,
    pull_timeout,
    log_file,
):
    """Update running Docker containers to the latest version of their image."""
    logger = logging.getLogger("dockerupdater")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except UpdaterError as exc:
        raise click.ClickException(str(exc)) from exc

    skip_backup = bool(_resolve_option(skip_backup, config_values, "skip_backup", default=False))
    quiet = bool(_resolve_option(quiet, config_values, "quiet", default=False))
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    backup_dir = str(_resolve_option(backup_dir, config_values, "backup_dir", default=DEFAULT_BACKUP_DIR))
    timeout = float(_resolve_option(timeout, config_values, "timeout", default=DEFAULT_COMMAND_TIMEOUT))
    pull_timeout = float(
        _resolve_option(pull_timeout, config_values, "pull_timeout", default=DEFAULT_PULL_TIMEOUT)
    )
    registry_timeout = float(
        config_values.get("registry_timeout", DEFAULT_REGISTRY_TIMEOUT)
    )
    log_file = _resolve_option(log_file, config_values, "log_file")

    if list_only and (container_name or all_running):
        raise click.UsageError("--list cannot be combined with a container name or --all.")
    if container_name and all_running:
        raise click.UsageError("Give either a container name or --all, not both.")
    if not list_only and not container_name and not all_running:
        raise click.ClickException("No container specified. Use -h for help.")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    options = UpdateOptions(
        force=force,
        dry_run=dry_run,
        skip_backup=skip_backup,
        quiet=quiet,
    )
    updater = DockerUpdater(
        options=options,
        backup_dir=backup_dir,
        command_timeout=timeout,
        pull_timeout=pull_timeout,
        registry_timeout=registry_timeout,
    )

    if list_only:
        raise SystemExit(updater.show_list())

    raise SystemExit(updater.run(container_name=container_name, all_running=all_running))


if __name__ == "__main__":
    main()
