"""Defaults shared across docker-update."""

DEFAULT_BACKUP_DIR = "/tmp/docker-backups"
DEFAULT_CONFIG_FILE = ".docker-update.yml"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
BACKUP_DIR_MODE = 0o700

DEFAULT_COMMAND_TIMEOUT = 60.0
DEFAULT_PULL_TIMEOUT = 900.0
DEFAULT_REGISTRY_TIMEOUT = 30.0

DEFAULT_REGISTRY = "registry-1.docker.io"
DOCKER_HUB_ALIASES = ("docker.io", "index.docker.io", "registry-1.docker.io", "registry.hub.docker.com")
DEFAULT_NAMESPACE = "library"
DEFAULT_TAG = "latest"
MANIFEST_ACCEPT_HEADER = (
    "application/vnd.docker.distribution.manifest.list.v2+json,"
    "application/vnd.docker.distribution.manifest.v2+json,"
    "application/vnd.oci.image.index.v1+json,"
    "application/vnd.oci.image.manifest.v1+json"
)

# Network modes that share another namespace; ports and extra networks do not apply.
SHARED_NETWORK_MODES = ("host", "none")
