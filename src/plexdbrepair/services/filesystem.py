"""Filesystem helpers for plexdbrepair."""

import logging
import os
import sys
from typing import List, Optional, Tuple

from rich.console import Console

from plexdbrepair.constants import SIDE_FILE_SUFFIXES


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except Exception as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def add_mode_bits(self, path: str, bits: int):
        """OR ``bits`` into the current mode of ``path``; repeated calls are no-ops."""
        try:
            current = os.stat(path).st_mode & 0o7777
        except OSError as exc:
            self.logger.warning("Could not read mode of %s: %s", path, exc)
            return
        if current | bits != current:
            self.set_permissions(path, current | bits)

    def owner_of(self, path: str) -> Optional[Tuple[int, int]]:
        try:
            stat_result = os.stat(path)
        except OSError as exc:
            self.logger.debug("Could not stat %s: %s", path, exc)
            return None
        return stat_result.st_uid, stat_result.st_gid

    def chown_tree(self, root: str, uid: int, gid: int) -> bool:
        """Recursively chown ``root``. Returns False if any entry could not be changed."""
        if sys.platform == "win32" or not os.path.exists(root):
            return False

        failures = 0
        paths = [root]
        for current_root, dirs, files in os.walk(root):
            paths.extend(os.path.join(current_root, name) for name in dirs + files)

        for path in paths:
            try:
                os.chown(path, uid, gid, follow_symlinks=False)
            except OSError as exc:
                failures += 1
                self.logger.debug("chown %s:%s failed on %s: %s", uid, gid, path, exc)

        if failures:
            message = f"Warning: Could not change ownership of {failures} path(s) under {root}"
            self.console.print(f"[yellow]{message}[/yellow]")
            self.logger.warning(message)
            return False
        return True

    def side_files(self, database_path: str) -> List[str]:
        return [f"{database_path}{suffix}" for suffix in SIDE_FILE_SUFFIXES]

    def database_family(self, database_path: str) -> List[str]:
        return [path for path in [database_path] + self.side_files(database_path) if os.path.exists(path)]

    def remove_side_files(self, database_path: str) -> List[str]:
        removed = []
        for path in self.side_files(database_path):
            if not os.path.exists(path):
                continue
            try:
                os.remove(path)
                removed.append(path)
                self.logger.debug("Removed side file: %s", path)
            except OSError as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)
        return removed
