"""Actionable error catalog for docker-update."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "runtime_unavailable": {
        "what": "The Docker engine is not reachable: {detail}",
        "next": "Check that the Docker daemon is running and run as root or as a member of the `docker` group.",
    },
    "docker_not_installed": {
        "what": "The `docker` command was not found.",
        "next": "Install the Docker CLI and make sure it is on PATH.",
    },
    "pull_failed": {
        "what": "Could not pull image {image} for container '{name}'.",
        "next": "Check registry access and credentials. The existing container was kept.",
    },
    "recreation_failed": {
        "what": "Container '{name}' was removed but could not be recreated: {detail}",
        "next": "Recreate it manually from the backup at {backup} or with: {command}",
    },
    "network_attach_failed": {
        "what": "Container '{name}' was recreated but could not be attached to network '{network}'.",
        "next": "Attach it with `docker network connect {network} {name}`.",
    },
    "start_failed": {
        "what": "Container '{name}' was recreated but did not start.",
        "next": "Inspect `docker logs {name}` and retry with `docker start {name}`.",
    },
    "backup_failed": {
        "what": "Could not write configuration backup for '{name}': {detail}",
        "next": "Check permissions on the backup directory or pass `--backup-dir`.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
