"""Container replacement state machine."""

import shlex
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from rich.markup import escape

from dockerupdater.errors import (
    BackupFailed,
    PullFailed,
    RecreationFailed,
    RuntimeCommandError,
    RuntimeUnavailable,
    StartFailed,
    UpdaterError,
)
from dockerupdater.errors_catalog import actionable_error
from dockerupdater.models import (
    BackupRecord,
    ConfigurationSnapshot,
    ContainerRef,
    OutcomeKind,
    Staleness,
    UpdateOptions,
    UpdateOutcome,
    UpdateState,
)
from dockerupdater.services.snapshot import build_create_command


@dataclass
class ReplacementRun:
    """Mutable bookkeeping for one container's pass through the machine."""

    name: str
    ref: Optional[ContainerRef] = None
    snapshot: Optional[ConfigurationSnapshot] = None
    backup: Optional[BackupRecord] = None
    outcome: Optional[OutcomeKind] = None


class ReplacementService:
    """
    Drives one container from ``IDLE`` to ``DONE``.

    Every step returns the next state. A step that fails raises an
    ``UpdaterError`` tagged with the state it failed in, so callers can tell
    which side effects already happened.
    """

    def __init__(
        self,
        runtime,
        version_oracle,
        snapshot_service,
        backup_service,
        options: UpdateOptions,
        logger,
        console,
    ):
        self.runtime = runtime
        self.version_oracle = version_oracle
        self.snapshot_service = snapshot_service
        self.backup_service = backup_service
        self.options = options
        self.logger = logger
        self.console = console
        self.steps: Dict[UpdateState, Callable[[ReplacementRun], UpdateState]] = {
            UpdateState.IDLE: self.resolve,
            UpdateState.RESOLVED: self.check_staleness,
            UpdateState.STALENESS_CHECKED: self.backup,
            UpdateState.BACKED_UP: self.stop,
            UpdateState.STOPPED: self.pull,
            UpdateState.PULLED: self.remove,
            UpdateState.REMOVED: self.recreate,
            UpdateState.RECREATED: self.start,
            UpdateState.STARTED: self.finish,
        }

    def run(self, name: str) -> UpdateOutcome:
        run = ReplacementRun(name=name)
        state = UpdateState.IDLE

        while state is not UpdateState.DONE:
            try:
                state = self.steps[state](run)
            except UpdaterError as exc:
                if exc.state is None:
                    exc.state = state
                if exc.container_name is None:
                    exc.container_name = name
                raise

        return UpdateOutcome(
            container_name=name,
            kind=run.outcome,
            state=UpdateState.DONE,
            snapshot=run.snapshot,
            backup=run.backup,
        )

    def resolve(self, run: ReplacementRun) -> UpdateState:
        run.ref = self.runtime.resolve(run.name)
        self.console.print(
            f"[blue]Updating container '{escape(run.name)}' using image "
            f"'{escape(run.ref.image_reference)}'[/blue]"
        )
        return UpdateState.RESOLVED

    def check_staleness(self, run: ReplacementRun) -> UpdateState:
        if self.options.force:
            self.logger.debug("Force enabled; skipping staleness check for %s", run.name)
        else:
            report = self.version_oracle.check(run.ref)
            if report.status is Staleness.CURRENT:
                self.console.print(
                    f"[green]Container '{escape(run.name)}' is already running the latest version[/green]"
                )
                run.outcome = OutcomeKind.UP_TO_DATE
                return UpdateState.DONE
            if report.status is Staleness.UNKNOWN:
                self.logger.warning(
                    "Could not determine whether '%s' is up to date (local digest: %s, remote digest: %s). "
                    "Proceeding with the update.",
                    run.name,
                    report.local_digest or "unavailable",
                    report.remote_digest or "unavailable",
                )

        if self.options.dry_run:
            self.console.print(
                f"Dry run: Would update {escape(run.name)} using image {escape(run.ref.image_reference)}"
            )
            run.outcome = OutcomeKind.DRY_RUN_PLANNED
            return UpdateState.DONE

        return UpdateState.STALENESS_CHECKED

    def backup(self, run: ReplacementRun) -> UpdateState:
        if self.options.skip_backup:
            self.logger.debug("Skipping configuration backup for %s", run.name)
            return UpdateState.BACKED_UP

        run.snapshot = self.snapshot_service.capture(run.ref)
        try:
            run.backup = self.backup_service.save(run.name, run.snapshot)
        except BackupFailed as exc:
            self.logger.warning("%s Continuing the update without a backup.", exc)
            return UpdateState.BACKED_UP

        self.console.print(f"Configuration backed up to: {escape(run.backup.path)}")
        return UpdateState.BACKED_UP

    def stop(self, run: ReplacementRun) -> UpdateState:
        self.logger.debug("Stopping container %s", run.name)
        try:
            self.runtime.stop(run.ref)
        except RuntimeCommandError as exc:
            self.logger.warning("Could not stop '%s', continuing: %s", run.name, exc)
        return UpdateState.STOPPED

    def pull(self, run: ReplacementRun) -> UpdateState:
        image = run.ref.image_reference
        self.logger.debug("Pulling image %s", image)
        try:
            digest = self.runtime.pull(image)
        except (PullFailed, RuntimeCommandError) as exc:
            self._restore_original(run)
            raise PullFailed(f"{actionable_error('pull_failed', image=image, name=run.name)}\n{exc}") from exc

        self.logger.debug("Pulled %s (%s)", image, digest or "digest unavailable")
        return UpdateState.PULLED

    def remove(self, run: ReplacementRun) -> UpdateState:
        try:
            if run.snapshot is None:
                run.snapshot = self.snapshot_service.capture(run.ref)
            self.logger.debug("Removing old container %s", run.name)
            self.runtime.remove(run.ref)
        except RuntimeCommandError:
            self._restore_original(run)
            raise
        return UpdateState.REMOVED

    def recreate(self, run: ReplacementRun) -> UpdateState:
        image = run.ref.image_reference
        command = build_create_command(run.name, image, run.snapshot)
        self.logger.debug("Creating new container %s", run.name)

        try:
            run.ref = self.runtime.create(run.name, image, run.snapshot)
        except (RuntimeCommandError, RuntimeUnavailable) as exc:
            raise RecreationFailed(
                actionable_error(
                    "recreation_failed",
                    name=run.name,
                    detail=str(exc),
                    backup=run.backup.path if run.backup else "<no backup>",
                    command=shlex.join(command),
                ),
                snapshot=run.snapshot,
                create_command=command,
                backup=run.backup,
            ) from exc
        return UpdateState.RECREATED

    def start(self, run: ReplacementRun) -> UpdateState:
        self._attach_networks(run)
        try:
            self.runtime.start(run.ref)
        except RuntimeCommandError as exc:
            raise StartFailed(f"{actionable_error('start_failed', name=run.name)}\n{exc}") from exc
        return UpdateState.STARTED

    def finish(self, run: ReplacementRun) -> UpdateState:
        self.console.print(f"[green]Successfully updated {escape(run.name)}[/green]")
        run.outcome = OutcomeKind.UPDATED
        return UpdateState.DONE

    def _attach_networks(self, run: ReplacementRun):
        if run.snapshot.network_mode:
            return
        for network in run.snapshot.networks[1:]:
            try:
                self.runtime.connect_network(network, run.ref)
            except RuntimeCommandError as exc:
                self.logger.warning(
                    "%s\n%s",
                    actionable_error("network_attach_failed", name=run.name, network=network),
                    exc,
                )

    def _restore_original(self, run: ReplacementRun):
        if not run.ref.running:
            return
        try:
            self.runtime.start(run.ref)
        except RuntimeCommandError as exc:
            self.logger.warning("Could not restart original container '%s': %s", run.name, exc)
            return
        self.console.print(f"[yellow]Restarted original container '{escape(run.name)}'[/yellow]")
