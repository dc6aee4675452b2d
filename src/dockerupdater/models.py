"""Shared domain models for docker-update."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class UpdateState(str, Enum):
    IDLE = "idle"
    RESOLVED = "resolved"
    STALENESS_CHECKED = "staleness_checked"
    BACKED_UP = "backed_up"
    STOPPED = "stopped"
    PULLED = "pulled"
    REMOVED = "removed"
    RECREATED = "recreated"
    STARTED = "started"
    DONE = "done"


class Staleness(str, Enum):
    STALE = "stale"
    CURRENT = "current"
    UNKNOWN = "unknown"


class OutcomeKind(str, Enum):
    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    DRY_RUN_PLANNED = "dry_run_planned"
    FAILED = "failed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ContainerRef:
    """A container as the engine reports it right now."""

    name: str
    image_reference: str
    runtime_id: str
    image_id: str = ""
    running: bool = True


@dataclass(frozen=True)
class PortBinding:
    container_port: str
    protocol: str = "tcp"
    host_port: str = ""
    host_ip: str = ""


@dataclass(frozen=True)
class MountSpec:
    kind: str
    source: str
    target: str
    read_only: bool = False


@dataclass(frozen=True)
class RestartPolicy:
    name: str = "no"
    maximum_retry_count: int = 0

    def as_argument(self) -> str:
        if self.name == "on-failure" and self.maximum_retry_count:
            return f"{self.name}:{self.maximum_retry_count}"
        return self.name


@dataclass(frozen=True)
class ConfigurationSnapshot:
    """Reproducible runtime shape of a container."""

    image_reference: str
    port_bindings: Tuple[PortBinding, ...] = ()
    mounts: Tuple[MountSpec, ...] = ()
    environment: Tuple[str, ...] = ()
    networks: Tuple[str, ...] = ()
    restart_policy: RestartPolicy = field(default_factory=RestartPolicy)
    labels: Dict[str, str] = field(default_factory=dict)
    network_mode: Optional[str] = None
    hostname: Optional[str] = None
    privileged: bool = False
    cap_add: Tuple[str, ...] = ()
    cap_drop: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BackupRecord:
    container_name: str
    captured_at: datetime
    key: str
    path: str
    snapshot: ConfigurationSnapshot


@dataclass(frozen=True)
class StalenessReport:
    status: Staleness
    local_digest: Optional[str] = None
    remote_digest: Optional[str] = None


@dataclass(frozen=True)
class UpdateOptions:
    """Immutable per-invocation switches."""

    force: bool = False
    dry_run: bool = False
    skip_backup: bool = False
    quiet: bool = False


@dataclass(frozen=True)
class UpdateOutcome:
    container_name: str
    kind: OutcomeKind
    state: UpdateState
    reason: Optional[str] = None
    snapshot: Optional[ConfigurationSnapshot] = None
    backup: Optional[BackupRecord] = None

    @property
    def is_failure(self) -> bool:
        return self.kind in (OutcomeKind.FAILED, OutcomeKind.NOT_FOUND)


@dataclass(frozen=True)
class ContainerStatusRow:
    name: str
    image_reference: str
    report: StalenessReport
