"""Docker engine client for docker-update."""

import json
from typing import Any, Dict, List, Optional

from dockerupdater.constants import DEFAULT_PULL_TIMEOUT
from dockerupdater.errors import ContainerNotFound, PullFailed, RuntimeCommandError
from dockerupdater.models import ConfigurationSnapshot, ContainerRef
from dockerupdater.services.registry import parse_image_reference
from dockerupdater.services.snapshot import build_create_command


class DockerRuntimeService:
    """Issues queries and commands against the engine through the docker CLI."""

    NOT_FOUND_PATTERNS = ("no such container", "no such object", "no such image")

    def __init__(self, logger, command_runner, pull_timeout: float = DEFAULT_PULL_TIMEOUT):
        self.logger = logger
        self.runner = command_runner
        self.pull_timeout = pull_timeout

    def resolve(self, name: str) -> ContainerRef:
        try:
            data = self.inspect_container(name)
        except RuntimeCommandError as exc:
            if self._is_not_found(exc.stderr):
                raise ContainerNotFound(
                    f"Container '{name}' not found.", container_name=name
                ) from exc
            raise

        ref = self._to_ref(data)
        if name not in (ref.name, ref.runtime_id) and not ref.runtime_id.startswith(name):
            raise ContainerNotFound(f"Container '{name}' not found.", container_name=name)
        return ref

    def inspect_container(self, name: str) -> Dict[str, Any]:
        result = self.runner.run(["docker", "container", "inspect", name])
        parsed = self._parse_json(result.stdout, name)
        if isinstance(parsed, list):
            parsed = parsed[0] if parsed else None
        if not parsed:
            raise ContainerNotFound(f"Container '{name}' not found.", container_name=name)
        return parsed

    def list_running(self) -> List[ContainerRef]:
        result = self.runner.run(["docker", "ps", "--quiet", "--no-trunc"])
        container_ids = result.stdout.split()
        if not container_ids:
            return []

        result = self.runner.run(["docker", "container", "inspect", *container_ids])
        return [self._to_ref(item) for item in self._parse_json(result.stdout, "running containers")]

    def image_digest(self, image: str, repository: str) -> Optional[str]:
        """Return the RepoDigests entry of ``image`` that belongs to ``repository``."""
        result = self.runner.run(
            ["docker", "image", "inspect", "--format", "{{json .RepoDigests}}", image],
            check=False,
        )
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            if self._is_not_found(stderr):
                return None
            raise RuntimeCommandError(
                f"Could not inspect image {image}: {stderr}",
                returncode=result.returncode,
                stderr=stderr,
            )

        for entry in self._parse_json(result.stdout, image) or []:
            repo, _, digest = entry.partition("@")
            if digest and parse_image_reference(repo).repository == repository:
                return digest
        return None

    def pull(self, image_reference: str) -> Optional[str]:
        try:
            self.runner.run(["docker", "pull", "--quiet", image_reference], timeout=self.pull_timeout)
        except RuntimeCommandError as exc:
            raise PullFailed(f"Could not pull {image_reference}: {exc}") from exc

        repository = parse_image_reference(image_reference).repository
        try:
            return self.image_digest(image_reference, repository)
        except RuntimeCommandError as exc:
            self.logger.warning("Pulled %s but could not read its digest: %s", image_reference, exc)
            return None

    def stop(self, ref: ContainerRef):
        self.runner.run(["docker", "stop", ref.name])

    def remove(self, ref: ContainerRef):
        self.runner.run(["docker", "rm", ref.name])

    def create(self, name: str, image_reference: str, snapshot: ConfigurationSnapshot) -> ContainerRef:
        result = self.runner.run(build_create_command(name, image_reference, snapshot))
        return ContainerRef(
            name=name,
            image_reference=image_reference,
            runtime_id=result.stdout.strip(),
            running=False,
        )

    def connect_network(self, network: str, ref: ContainerRef):
        self.runner.run(["docker", "network", "connect", network, ref.name])

    def start(self, ref: ContainerRef):
        self.runner.run(["docker", "start", ref.name])

    def _is_not_found(self, stderr: str) -> bool:
        text = (stderr or "").lower()
        return any(pattern in text for pattern in self.NOT_FOUND_PATTERNS)

    @staticmethod
    def _parse_json(output: str, label: str) -> Any:
        try:
            return json.loads(output or "null")
        except json.JSONDecodeError as exc:
            raise RuntimeCommandError(f"Unexpected engine output for {label}: {exc}") from exc

    @staticmethod
    def _to_ref(data: Dict[str, Any]) -> ContainerRef:
        config = data.get("Config") or {}
        state = data.get("State") or {}
        return ContainerRef(
            name=(data.get("Name") or "").lstrip("/"),
            image_reference=config.get("Image") or "",
            runtime_id=data.get("Id") or "",
            image_id=data.get("Image") or "",
            running=bool(state.get("Running")),
        )
