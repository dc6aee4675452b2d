"""Subprocess execution service for docker-update."""

import shlex
import subprocess
from typing import List, Optional

from dockerupdater.errors import RuntimeCommandError, RuntimeUnavailable
from dockerupdater.errors_catalog import actionable_error


class CommandRunner:
    """Runs engine commands as argument vectors with consistent error handling."""

    UNAVAILABLE_PATTERNS = (
        "cannot connect to the docker daemon",
        "is the docker daemon running",
        "error during connect",
        "permission denied while trying to connect",
    )

    def __init__(self, logger, default_timeout: Optional[float] = None, subprocess_module=subprocess):
        self.logger = logger
        self.default_timeout = default_timeout
        self.subprocess = subprocess_module

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = shlex.join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = self.subprocess.run(
                cmd,
                text=True,
                capture_output=True,
                timeout=effective_timeout,
            )
        except FileNotFoundError as exc:
            raise RuntimeUnavailable(actionable_error("docker_not_installed")) from exc
        except self.subprocess.TimeoutExpired as exc:
            raise RuntimeCommandError(
                f"Command timed out after {effective_timeout}s: {cmd_str}",
                timed_out=True,
            ) from exc

        if result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip()
        if self._is_unavailable(stderr):
            raise RuntimeUnavailable(actionable_error("runtime_unavailable", detail=stderr))

        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise RuntimeCommandError(message, returncode=result.returncode, stderr=stderr)

        self.logger.debug(message)
        return result

    def _is_unavailable(self, stderr: str) -> bool:
        text = stderr.lower()
        return any(pattern in text for pattern in self.UNAVAILABLE_PATTERNS)
