"""Pre-maintenance backup of the database family."""

import os
import shutil
from pathlib import Path
from typing import List

from plexdbrepair.constants import DIR_MODE
from plexdbrepair.errors import RepairError
from plexdbrepair.errors_catalog import actionable_error
from plexdbrepair.models import DeploymentContext


class BackupService:
    """Copies the database and its side files into a timestamped snapshot."""

    def __init__(self, logger, console, filesystem_service, backup_root: str):
        self.logger = logger
        self.console = console
        self.filesystem_service = filesystem_service
        self.backup_root = os.path.expanduser(backup_root)

    def snapshot_dir(self, timestamp: str) -> Path:
        return Path(self.backup_root) / timestamp

    def create_snapshot(self, context: DeploymentContext, timestamp: str) -> Path:
        target = self.snapshot_dir(timestamp)
        self.console.print(f"[blue]Backing up database to {target}...[/blue]")
        self.logger.info("Backing up %s to %s", context.database_path, target)

        if target.exists():
            raise RepairError(
                f"Backup directory already exists: {target}. Wait a second and run again."
            )

        try:
            target.mkdir(parents=True)
            self.filesystem_service.set_permissions(str(target), DIR_MODE)
            copied = self._copy_family(context.database_path, target)
        except (OSError, shutil.Error) as exc:
            raise RepairError(
                f"{actionable_error('backup_failed', path=context.database_path)}\n{exc}"
            ) from exc

        if not copied:
            raise RepairError(actionable_error("backup_failed", path=context.database_path))

        for name in copied:
            self.logger.debug("Backed up %s", name)
        self.console.print(f"[green]Backup complete ({len(copied)} file(s)).[/green]")
        return target

    def _copy_family(self, database_path: str, target: Path) -> List[str]:
        copied = []
        for source in self.filesystem_service.database_family(database_path):
            destination = target / os.path.basename(source)
            shutil.copy2(source, destination)
            if os.path.getsize(source) != os.path.getsize(destination):
                raise RepairError(
                    f"{actionable_error('backup_failed', path=source)}\nSize mismatch after copy."
                )
            copied.append(os.path.basename(source))
        return copied

    def restore_snapshot(self, snapshot_dir: str, context: DeploymentContext) -> List[str]:
        """Copy a snapshot back over the live database directory."""
        restored = []
        snapshot = Path(snapshot_dir)
        if not snapshot.is_dir():
            raise RepairError(f"Backup directory not found: {snapshot_dir}")

        # Side files absent from the snapshot must not survive next to the restored db.
        self.filesystem_service.remove_side_files(context.database_path)

        for entry in sorted(snapshot.iterdir()):
            if not entry.name.startswith(context.database_name):
                continue
            shutil.copy2(entry, os.path.join(context.database_dir, entry.name))
            restored.append(entry.name)

        self.logger.info("Restored %s file(s) from %s", len(restored), snapshot_dir)
        return restored
