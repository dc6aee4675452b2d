"""
docker-update - Update running containers to the latest image while keeping their configuration
"""

__version__ = "1.0.0"

from .core import DockerUpdater
from .errors import UpdaterError

__all__ = ["DockerUpdater", "UpdaterError"]
