"""Narrow interface over the `Plex SQLite` command line binary."""

import subprocess
from typing import Callable

from plexdbrepair.models import IntegrityReport


def _quote(path: str) -> str:
    # Dot-command arguments are split on whitespace unless double-quoted.
    escaped = path.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SQLiteBinary:
    """Runs statements and dot-commands against a database file."""

    def __init__(self, path: str, run_cmd: Callable[..., subprocess.CompletedProcess]):
        self.path = path
        self.run_cmd = run_cmd

    def run_statement(self, database_path: str, *statements: str, check: bool = False):
        return self.run_cmd(
            [self.path, database_path, *statements],
            check=check,
            capture_output=True,
        )

    def _check(self, database_path: str, pragma: str) -> IntegrityReport:
        result = self.run_statement(database_path, f"PRAGMA {pragma};")
        if result.returncode != 0:
            # Rows printed before the failure stay in the report.
            failure = (result.stderr or "").strip() or f"{pragma} exited with code {result.returncode}"
            parts = [(result.stdout or "").strip(), failure]
            return IntegrityReport(output="\n".join(part for part in parts if part))
        return IntegrityReport(output=(result.stdout or "").strip())

    def integrity_check(self, database_path: str) -> IntegrityReport:
        return self._check(database_path, "integrity_check")

    def quick_check(self, database_path: str) -> IntegrityReport:
        return self._check(database_path, "quick_check")

    def reindex_and_vacuum(self, database_path: str) -> bool:
        result = self.run_statement(database_path, "REINDEX;", "VACUUM;")
        return result.returncode == 0

    def dump(self, database_path: str, dump_path: str) -> bool:
        result = self.run_statement(database_path, f".output {_quote(dump_path)}", ".dump")
        return result.returncode == 0

    def restore(self, dump_path: str, database_path: str) -> bool:
        result = self.run_statement(database_path, f".read {_quote(dump_path)}")
        return result.returncode == 0
