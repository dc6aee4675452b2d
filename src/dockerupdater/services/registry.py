"""Registry manifest lookups for docker-update."""

import re
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from dockerupdater.constants import (
    DEFAULT_NAMESPACE,
    DEFAULT_REGISTRY,
    DEFAULT_REGISTRY_TIMEOUT,
    DEFAULT_TAG,
    DOCKER_HUB_ALIASES,
    MANIFEST_ACCEPT_HEADER,
)

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


@dataclass(frozen=True)
class ImageName:
    registry: str
    path: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @property
    def repository(self) -> str:
        return f"{self.registry}/{self.path}"


def parse_image_reference(image: str) -> ImageName:
    """
    Split an image reference into registry, repository path, tag and digest.

    Docker Hub aliases collapse onto one registry name and single-component
    Hub repositories gain the ``library/`` namespace, so two spellings of the
    same repository compare equal.
    """
    digest = None
    if "@" in image:
        image, digest = image.split("@", 1)

    tag = None
    last_slash = image.rfind("/")
    last_colon = image.rfind(":")
    if last_colon > last_slash:
        image, tag = image[:last_colon], image[last_colon + 1 :]

    parts = image.split("/", 1)
    first_part = parts[0]
    if len(parts) == 2 and ("." in first_part or ":" in first_part or first_part == "localhost"):
        registry, path = parts
    else:
        registry, path = DEFAULT_REGISTRY, image

    if registry in DOCKER_HUB_ALIASES:
        registry = DEFAULT_REGISTRY
    if registry == DEFAULT_REGISTRY and "/" not in path:
        path = f"{DEFAULT_NAMESPACE}/{path}"

    if tag is None and digest is None:
        tag = DEFAULT_TAG

    return ImageName(registry=registry, path=path, tag=tag, digest=digest)


class RegistryService:
    """Reads manifest digests from a registry without pulling layers."""

    def __init__(self, logger, timeout: float = DEFAULT_REGISTRY_TIMEOUT, requests_module=requests):
        self.logger = logger
        self.timeout = timeout
        self.requests = requests_module

    def remote_digest(self, image_reference: str) -> Optional[str]:
        name = parse_image_reference(image_reference)
        if name.digest:
            return name.digest

        url = f"https://{name.registry}/v2/{name.path}/manifests/{name.tag}"
        headers = {"Accept": MANIFEST_ACCEPT_HEADER}

        try:
            response = self.requests.head(url, headers=headers, timeout=self.timeout)
            if response.status_code == 401:
                token = self._fetch_token(response.headers.get("WWW-Authenticate", ""), name)
                if token:
                    headers["Authorization"] = f"Bearer {token}"
                    response = self.requests.head(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except self.requests.RequestException as exc:
            self.logger.debug("Could not read manifest digest for %s: %s", image_reference, exc)
            return None

        return response.headers.get("Docker-Content-Digest")

    def _fetch_token(self, challenge: str, name: ImageName) -> Optional[str]:
        if not challenge.lower().startswith("bearer"):
            return None

        params: Dict[str, str] = dict(_CHALLENGE_PARAM.findall(challenge))
        realm = params.pop("realm", None)
        if not realm:
            return None
        params.setdefault("scope", f"repository:{name.path}:pull")

        try:
            response = self.requests.get(realm, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (self.requests.RequestException, ValueError) as exc:
            self.logger.debug("Could not get registry token for %s: %s", name.repository, exc)
            return None

        return payload.get("token") or payload.get("access_token")
