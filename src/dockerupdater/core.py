import json
import logging
from typing import List, Optional

import requests
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .constants import (
    DEFAULT_BACKUP_DIR,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_PULL_TIMEOUT,
    DEFAULT_REGISTRY_TIMEOUT,
)
from .errors import ContainerNotFound, RecreationFailed, RuntimeUnavailable, UpdaterError
from .models import (
    ContainerStatusRow,
    OutcomeKind,
    Staleness,
    UpdateOptions,
    UpdateOutcome,
    UpdateState,
)
from .services.backup import BackupService
from .services.command_runner import CommandRunner
from .services.docker_runtime import DockerRuntimeService
from .services.registry import RegistryService
from .services.replacement import ReplacementService
from .services.snapshot import SnapshotService
from .services.version_oracle import VersionOracle

logger = logging.getLogger("dockerupdater")

STATUS_LABELS = {
    Staleness.CURRENT: ("Up to date", "green"),
    Staleness.STALE: ("Update available", "yellow"),
    Staleness.UNKNOWN: ("Unknown", "yellow"),
}


def short_digest(digest: Optional[str]) -> str:
    if not digest:
        return "-"
    algorithm, _, value = digest.partition(":")
    return f"{algorithm}:{value[:12]}" if value else digest[:19]


class DockerUpdater:
    """Applies the replacement state machine to one or all running containers."""

    def __init__(
        self,
        options: UpdateOptions,
        backup_dir: str = DEFAULT_BACKUP_DIR,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        pull_timeout: float = DEFAULT_PULL_TIMEOUT,
        registry_timeout: float = DEFAULT_REGISTRY_TIMEOUT,
        runtime_service=None,
        registry_service=None,
        backup_service=None,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
    ):
        self.options = options
        self.console = console or Console(quiet=options.quiet)
        self.error_console = error_console or Console(stderr=True)

        self.command_runner = CommandRunner(logger=logger, default_timeout=command_timeout)
        self.runtime_service = runtime_service or DockerRuntimeService(
            logger=logger,
            command_runner=self.command_runner,
            pull_timeout=pull_timeout,
        )
        self.registry_service = registry_service or RegistryService(
            logger=logger,
            timeout=registry_timeout,
            requests_module=requests,
        )
        self.backup_service = backup_service or BackupService(backup_dir=backup_dir, logger=logger)
        self.snapshot_service = SnapshotService(runtime=self.runtime_service, logger=logger)
        self.version_oracle = VersionOracle(
            runtime=self.runtime_service,
            registry=self.registry_service,
            logger=logger,
        )
        self.replacement_service = ReplacementService(
            runtime=self.runtime_service,
            version_oracle=self.version_oracle,
            snapshot_service=self.snapshot_service,
            backup_service=self.backup_service,
            options=options,
            logger=logger,
            console=self.console,
        )

    def resolve_targets(self, container_name: Optional[str], all_running: bool) -> List[str]:
        if all_running:
            return [ref.name for ref in self.runtime_service.list_running()]
        return [container_name]

    def update(self, container_name: Optional[str] = None, all_running: bool = False) -> List[UpdateOutcome]:
        if all_running:
            self.console.print("[blue]Updating all running containers...[/blue]")

        names = self.resolve_targets(container_name, all_running)
        outcomes: List[UpdateOutcome] = []

        for index, name in enumerate(names):
            try:
                outcome = self.replacement_service.run(name)
            except ContainerNotFound as exc:
                logger.error("Error: %s", exc)
                outcome = UpdateOutcome(name, OutcomeKind.NOT_FOUND, UpdateState.IDLE, reason=str(exc))
            except RecreationFailed as exc:
                self._report_recreation_failure(exc)
                outcome = UpdateOutcome(
                    name,
                    OutcomeKind.FAILED,
                    exc.state,
                    reason=str(exc),
                    snapshot=exc.snapshot,
                    backup=exc.backup,
                )
            except RuntimeUnavailable as exc:
                self._report_failure(exc)
                outcomes.append(UpdateOutcome(name, OutcomeKind.FAILED, exc.state, reason=str(exc)))
                for skipped in names[index + 1 :]:
                    outcomes.append(
                        UpdateOutcome(
                            skipped,
                            OutcomeKind.FAILED,
                            UpdateState.IDLE,
                            reason="Not attempted: the Docker engine is unavailable.",
                        )
                    )
                break
            except UpdaterError as exc:
                self._report_failure(exc)
                outcome = UpdateOutcome(name, OutcomeKind.FAILED, exc.state, reason=str(exc))
            except KeyboardInterrupt:
                logger.error(
                    "Update of '%s' was interrupted. Check its state with `docker ps -a` "
                    "and recover from the latest backup if needed.",
                    name,
                )
                raise
            outcomes.append(outcome)

        return outcomes

    def run(self, container_name: Optional[str] = None, all_running: bool = False) -> int:
        try:
            outcomes = self.update(container_name=container_name, all_running=all_running)
        except KeyboardInterrupt:
            self.error_console.print("[bold red]Operation cancelled by user.[/bold red]")
            return 1
        except UpdaterError as exc:
            logger.error("Error: %s", exc)
            return 1

        if len(outcomes) > 1:
            self.print_summary(outcomes)

        return 1 if any(outcome.is_failure for outcome in outcomes) else 0

    def print_summary(self, outcomes: List[UpdateOutcome]):
        table = Table(title="Update summary")
        table.add_column("Container")
        table.add_column("Outcome")
        table.add_column("State")
        for outcome in outcomes:
            style = "red" if outcome.is_failure else "green"
            table.add_row(
                escape(outcome.container_name),
                f"[{style}]{outcome.kind.value}[/{style}]",
                outcome.state.value if outcome.state else "-",
            )
        self.console.print(table)

    def list_containers(self) -> List[ContainerStatusRow]:
        rows = []
        for ref in self.runtime_service.list_running():
            rows.append(
                ContainerStatusRow(
                    name=ref.name,
                    image_reference=ref.image_reference,
                    report=self.version_oracle.check(ref),
                )
            )
        return rows

    def render_list(self, rows: List[ContainerStatusRow], console: Optional[Console] = None):
        console = console or self.console
        table = Table(show_lines=False)
        table.add_column("Name", style="bold")
        table.add_column("Image")
        table.add_column("Current Version")
        table.add_column("Latest Available")
        table.add_column("Status")

        for row in rows:
            label, color = STATUS_LABELS[row.report.status]
            table.add_row(
                escape(row.name),
                escape(row.image_reference),
                short_digest(row.report.local_digest),
                short_digest(row.report.remote_digest),
                f"[{color}]{label}[/{color}]",
            )

        console.print(table)
        console.print()
        console.print("[blue]Notes:[/blue]")
        console.print("- Status indicates if updates are available based on image digests")
        console.print("- [green]Up to date[/green]: Running latest version")
        console.print("- [yellow]Update available[/yellow]: Newer version exists")
        console.print("- [yellow]Unknown[/yellow]: Unable to determine update status")

    def show_list(self) -> int:
        try:
            rows = self.list_containers()
        except UpdaterError as exc:
            logger.error("Error: %s", exc)
            return 1
        self.render_list(rows, console=Console() if self.options.quiet else self.console)
        return 0

    def _report_failure(self, exc: UpdaterError):
        state = exc.state.value if exc.state else "unknown"
        logger.error("Failed to update '%s' at state '%s': %s", exc.container_name, state, exc)

    def _report_recreation_failure(self, exc: RecreationFailed):
        logger.critical("Container '%s' was removed and could not be recreated.", exc.container_name)
        snapshot_json = json.dumps(exc.snapshot.to_dict(), indent=2, sort_keys=True)
        self.error_console.print(
            Panel(
                f"{escape(str(exc))}\n\n[bold]Retained configuration:[/bold]\n{escape(snapshot_json)}",
                title=f"RECREATION FAILED: {escape(exc.container_name or '')}",
                border_style="bold red",
            )
        )
