"""Domain errors for docker-update."""


class UpdaterError(RuntimeError):
    """Raised when a container update cannot continue safely."""

    def __init__(self, message: str, container_name=None, state=None):
        super().__init__(message)
        self.container_name = container_name
        self.state = state


class ContainerNotFound(UpdaterError):
    """The target container does not exist."""


class RuntimeUnavailable(UpdaterError):
    """The container engine cannot be reached."""


class RuntimeCommandError(UpdaterError):
    """An engine command ran but reported a failure."""

    def __init__(self, message: str, returncode=None, stderr: str = "", timed_out: bool = False):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out


class PullFailed(UpdaterError):
    """The image could not be pulled. The old container is kept."""


class RecreationFailed(UpdaterError):
    """The old container was removed but the new one could not be created."""

    def __init__(self, message: str, snapshot, create_command=None, backup=None, **kwargs):
        super().__init__(message, **kwargs)
        self.snapshot = snapshot
        self.create_command = create_command
        self.backup = backup


class StartFailed(UpdaterError):
    """The new container exists but did not start."""


class BackupFailed(UpdaterError):
    """The configuration backup could not be written."""
