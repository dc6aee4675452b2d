"""YAML defaults for docker-update options."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from dockerupdater.errors import UpdaterError

_PATH_KEYS = ("backup_dir", "log_file")
_FLAG_KEYS = ("skip_backup", "verbose", "quiet")
_SECONDS_KEYS = ("timeout", "pull_timeout", "registry_timeout")


class ConfigLoader:
    """Reads a YAML mapping of option defaults and checks each value's type."""

    SUPPORTED_KEYS = set(_PATH_KEYS + _FLAG_KEYS + _SECONDS_KEYS)

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise UpdaterError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise UpdaterError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise UpdaterError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(str(key) for key in set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            raise UpdaterError(f"Unknown configuration keys: {', '.join(unknown)}")

        for key, value in parsed.items():
            self._check_value(config_path, key, value)
        return parsed

    @staticmethod
    def _check_value(config_path: str, key: str, value: Any):
        if key in _FLAG_KEYS:
            valid, expected = isinstance(value, bool), "true or false"
        elif key in _SECONDS_KEYS:
            valid = isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
            expected = "a positive number of seconds"
        else:
            valid, expected = isinstance(value, str) and bool(value), "a non-empty path"

        if not valid:
            raise UpdaterError(f"Invalid value for '{key}' in '{config_path}': expected {expected}, got {value!r}")
