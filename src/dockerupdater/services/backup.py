"""Write-once configuration backups for manual recovery."""

import json
import os
import tempfile
from datetime import datetime
from typing import Callable, Optional, Tuple

from dockerupdater.constants import BACKUP_DIR_MODE, BACKUP_TIMESTAMP_FORMAT
from dockerupdater.errors import BackupFailed
from dockerupdater.errors_catalog import actionable_error
from dockerupdater.models import BackupRecord, ConfigurationSnapshot


class BackupService:
    """Persists snapshots as ``{name}_{YYYYMMDD_HHMMSS}.json`` without ever overwriting."""

    def __init__(self, backup_dir: str, logger, clock: Optional[Callable[[], datetime]] = None):
        self.backup_dir = backup_dir
        self.logger = logger
        self.clock = clock or datetime.now

    def save(self, container_name: str, snapshot: ConfigurationSnapshot) -> BackupRecord:
        captured_at = self.clock()
        base_key = f"{container_name}_{captured_at.strftime(BACKUP_TIMESTAMP_FORMAT)}"
        payload = {
            "container_name": container_name,
            "captured_at": captured_at.isoformat(),
            "snapshot": snapshot.to_dict(),
        }

        try:
            self._ensure_backup_dir()
            fd, temp_path = tempfile.mkstemp(prefix=".backup-", suffix=".json", dir=self.backup_dir)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                    json.dump(payload, file_obj, indent=2, sort_keys=True)
                    file_obj.write("\n")
                key, path = self._link_unique(temp_path, base_key)
            finally:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
        except OSError as exc:
            raise BackupFailed(
                actionable_error("backup_failed", name=container_name, detail=str(exc)),
                container_name=container_name,
            ) from exc

        self.logger.debug("Backup for %s written to %s", container_name, path)
        return BackupRecord(
            container_name=container_name,
            captured_at=captured_at,
            key=key,
            path=path,
            snapshot=snapshot,
        )

    def _ensure_backup_dir(self):
        if os.path.isdir(self.backup_dir):
            return
        os.makedirs(self.backup_dir, mode=BACKUP_DIR_MODE, exist_ok=True)
        self.logger.info("Created backup directory %s", self.backup_dir)

    def _link_unique(self, temp_path: str, base_key: str) -> Tuple[str, str]:
        suffix = 0
        while True:
            key = base_key if suffix == 0 else f"{base_key}_{suffix}"
            path = os.path.join(self.backup_dir, f"{key}.json")
            try:
                os.link(temp_path, path)
                return key, path
            except FileExistsError:
                suffix += 1
