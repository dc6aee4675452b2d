"""Configuration snapshot capture and container-create rendering."""

from typing import Any, Dict, List, Optional, Tuple

from dockerupdater.constants import SHARED_NETWORK_MODES
from dockerupdater.models import (
    ConfigurationSnapshot,
    ContainerRef,
    MountSpec,
    PortBinding,
    RestartPolicy,
)


def shares_network_namespace(network_mode: Optional[str]) -> bool:
    if not network_mode:
        return False
    return network_mode in SHARED_NETWORK_MODES or network_mode.startswith("container:")


def _csv_field(value: str) -> str:
    # --mount values are parsed as CSV by the engine.
    if any(char in value for char in ',"\n'):
        return '"' + value.replace('"', '""') + '"'
    return value


class SnapshotService:
    """Maps engine inspection data onto configuration snapshots."""

    SUPPORTED_MOUNT_TYPES = ("bind", "volume")

    def __init__(self, runtime, logger):
        self.runtime = runtime
        self.logger = logger

    def capture(self, ref: ContainerRef) -> ConfigurationSnapshot:
        data = self.runtime.inspect_container(ref.runtime_id or ref.name)
        return self.from_inspect(data)

    def from_inspect(self, data: Dict[str, Any]) -> ConfigurationSnapshot:
        config = data.get("Config") or {}
        host_config = data.get("HostConfig") or {}
        network_mode = host_config.get("NetworkMode") or ""
        shared = shares_network_namespace(network_mode)

        restart = host_config.get("RestartPolicy") or {}

        return ConfigurationSnapshot(
            image_reference=config.get("Image") or "",
            port_bindings=() if shared else self._port_bindings(host_config),
            mounts=self._mounts(data.get("Mounts") or []),
            environment=tuple(config.get("Env") or []),
            networks=() if shared else self._networks(data, network_mode),
            restart_policy=RestartPolicy(
                name=restart.get("Name") or "no",
                maximum_retry_count=int(restart.get("MaximumRetryCount") or 0),
            ),
            labels=dict(config.get("Labels") or {}),
            network_mode=network_mode if shared else None,
            hostname=self._explicit_hostname(data, config, shared),
            privileged=bool(host_config.get("Privileged")),
            cap_add=tuple(host_config.get("CapAdd") or []),
            cap_drop=tuple(host_config.get("CapDrop") or []),
        )

    def _port_bindings(self, host_config: Dict[str, Any]) -> Tuple[PortBinding, ...]:
        bindings = []
        for port_key, host_bindings in (host_config.get("PortBindings") or {}).items():
            container_port, _, protocol = port_key.partition("/")
            for binding in host_bindings or []:
                bindings.append(
                    PortBinding(
                        container_port=container_port,
                        protocol=protocol or "tcp",
                        host_port=binding.get("HostPort") or "",
                        host_ip=binding.get("HostIp") or "",
                    )
                )
        return tuple(bindings)

    def _mounts(self, mounts: List[Dict[str, Any]]) -> Tuple[MountSpec, ...]:
        specs = []
        for mount in mounts:
            kind = mount.get("Type")
            if kind not in self.SUPPORTED_MOUNT_TYPES:
                self.logger.debug("Skipping %s mount at %s", kind, mount.get("Destination"))
                continue
            source = mount.get("Source") if kind == "bind" else mount.get("Name")
            specs.append(
                MountSpec(
                    kind=kind,
                    source=source or "",
                    target=mount.get("Destination") or "",
                    read_only=not mount.get("RW", True),
                )
            )
        return tuple(specs)

    @staticmethod
    def _networks(data: Dict[str, Any], network_mode: str) -> Tuple[str, ...]:
        names = list(((data.get("NetworkSettings") or {}).get("Networks") or {}).keys())
        if network_mode in names:
            names.remove(network_mode)
            names.insert(0, network_mode)
        return tuple(names)

    @staticmethod
    def _explicit_hostname(data: Dict[str, Any], config: Dict[str, Any], shared: bool) -> Optional[str]:
        hostname = config.get("Hostname")
        if shared or not hostname:
            return None
        if hostname == (data.get("Id") or "")[:12]:
            return None
        return hostname


def build_create_command(name: str, image_reference: str, snapshot: ConfigurationSnapshot) -> List[str]:
    """Render ``docker create`` as one argument per configuration value."""
    args = ["docker", "create", "--name", name]

    if snapshot.hostname:
        args += ["--hostname", snapshot.hostname]

    for binding in snapshot.port_bindings:
        args += ["--publish", _publish_value(binding)]

    for mount in snapshot.mounts:
        args += ["--mount", _mount_value(mount)]

    for variable in snapshot.environment:
        args += ["--env", variable]

    if snapshot.network_mode:
        args += ["--network", snapshot.network_mode]
    elif snapshot.networks:
        args += ["--network", snapshot.networks[0]]

    for key, value in snapshot.labels.items():
        args += ["--label", f"{key}={value}"]

    args += ["--restart", snapshot.restart_policy.as_argument()]

    if snapshot.privileged:
        args.append("--privileged")
    for capability in snapshot.cap_add:
        args += ["--cap-add", capability]
    for capability in snapshot.cap_drop:
        args += ["--cap-drop", capability]

    args.append(image_reference)
    return args


def _publish_value(binding: PortBinding) -> str:
    container_part = f"{binding.container_port}/{binding.protocol}"
    host_ip = binding.host_ip
    if ":" in host_ip:
        host_ip = f"[{host_ip}]"
    if host_ip:
        return f"{host_ip}:{binding.host_port}:{container_part}"
    if binding.host_port:
        return f"{binding.host_port}:{container_part}"
    return container_part


def _mount_value(mount: MountSpec) -> str:
    fields = [f"type={mount.kind}", f"source={mount.source}", f"target={mount.target}"]
    if mount.read_only:
        fields.append("readonly")
    return ",".join(_csv_field(field) for field in fields)
