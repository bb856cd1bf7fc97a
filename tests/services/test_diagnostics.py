import os
import sqlite3
import subprocess

import pytest

from plexdbrepair.constants import DATABASE_NAME, DATABASE_SUBPATH
from plexdbrepair.errors import RepairError
from plexdbrepair.models import CommunityContainerProfile, DeploymentContext, IntegrityReport, is_integrity_ok
from plexdbrepair.services.command_runner import CommandRunner
from plexdbrepair.services.diagnostics import DiagnosticService
from plexdbrepair.services.filesystem import FileSystemService
from plexdbrepair.services.sqlite_binary import SQLiteBinary


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def _context(root, binary) -> DeploymentContext:
    database_dir = os.path.join(str(root), DATABASE_SUBPATH)
    return DeploymentContext(
        profile=CommunityContainerProfile(container="plex"),
        config_root=str(root),
        database_dir=database_dir,
        database_path=os.path.join(database_dir, DATABASE_NAME),
        sqlite_binary=str(binary),
    )


def _service(binary: SQLiteBinary) -> DiagnosticService:
    filesystem = FileSystemService(logger=DummyLogger(), console=DummyConsole())
    return DiagnosticService(DummyLogger(), DummyConsole(), filesystem, binary)


def _real_binary(path) -> SQLiteBinary:
    return SQLiteBinary(str(path), CommandRunner(logger=DummyLogger()).run)


class ScriptedBinary:
    """Repair binary double with canned integrity output."""

    def __init__(self, integrity_outputs, dump_ok=True, restore_ok=True):
        self.integrity_outputs = list(integrity_outputs)
        self.dump_ok = dump_ok
        self.restore_ok = restore_ok
        self.calls = []

    def integrity_check(self, database_path):
        self.calls.append(("integrity_check", database_path))
        return IntegrityReport(output=self.integrity_outputs.pop(0))

    def quick_check(self, database_path):
        return IntegrityReport(output="ok")

    def reindex_and_vacuum(self, database_path):
        return False

    def dump(self, database_path, dump_path):
        self.calls.append(("dump", database_path, dump_path))
        if self.dump_ok:
            with open(dump_path, "w", encoding="utf-8") as file_obj:
                file_obj.write("BEGIN TRANSACTION;\nCOMMIT;\n")
        return self.dump_ok

    def restore(self, dump_path, database_path):
        self.calls.append(("restore", dump_path, database_path))
        if self.restore_ok:
            open(database_path, "wb").close()
        return self.restore_ok


@pytest.mark.parametrize(
    "output,expected",
    [
        ("ok", True),
        ("ok\n", True),
        ("OK", False),
        ("ok\nok", False),
        ("*** in database main ***\nPage 12: btreeInitPage() returns error code 11", False),
        ("not ok", False),
        ("", False),
    ],
)
def test_integrity_verdict_requires_exact_single_ok_line(output, expected):
    assert is_integrity_ok(output) is expected
    assert IntegrityReport(output=output).ok is expected


def test_sqlite_binary_builds_argv_with_quoted_dot_commands():
    calls = []

    def fake_run_cmd(cmd, check=False, capture_output=True):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    binary = SQLiteBinary("/bin/Plex SQLite", fake_run_cmd)
    binary.dump("/data/lib.broken.db", "/data/Plug-in Support/dump.sql")
    binary.restore("/data/Plug-in Support/dump.sql", "/data/lib.db")

    assert calls[0] == [
        "/bin/Plex SQLite",
        "/data/lib.broken.db",
        '.output "/data/Plug-in Support/dump.sql"',
        ".dump",
    ]
    assert calls[1] == ["/bin/Plex SQLite", "/data/lib.db", '.read "/data/Plug-in Support/dump.sql"']


def test_failed_check_reports_stderr_as_not_ok():
    def fake_run_cmd(cmd, check=False, capture_output=True):
        return subprocess.CompletedProcess(cmd, 26, stdout="", stderr="Error: file is not a database")

    report = SQLiteBinary("/bin/Plex SQLite", fake_run_cmd).integrity_check("/data/lib.db")

    assert report.output == "Error: file is not a database"
    assert report.ok is False


def test_failed_check_keeps_rows_printed_before_the_error():
    def fake_run_cmd(cmd, check=False, capture_output=True):
        return subprocess.CompletedProcess(
            cmd,
            11,
            stdout="row 1022 missing from index idx_title\n",
            stderr="Error: database disk image is malformed\n",
        )

    report = SQLiteBinary("/bin/Plex SQLite", fake_run_cmd).integrity_check("/data/lib.db")

    assert report.output == "row 1022 missing from index idx_title\nError: database disk image is malformed"
    assert report.ok is False


def test_failed_check_with_ok_output_is_still_not_ok():
    def fake_run_cmd(cmd, check=False, capture_output=True):
        return subprocess.CompletedProcess(cmd, 1, stdout="ok\n", stderr="")

    report = SQLiteBinary("/bin/Plex SQLite", fake_run_cmd).quick_check("/data/lib.db")

    assert report.output == "ok\nquick_check exited with code 1"
    assert report.ok is False


def test_diagnose_healthy_database(plex_config_root, fake_plex_sqlite):
    context = _context(plex_config_root, fake_plex_sqlite)

    report = _service(_real_binary(fake_plex_sqlite)).diagnose(context)

    assert report.ok is True
    assert report.output == "ok"


def test_diagnose_garbage_file_is_not_ok(plex_config_root, fake_plex_sqlite):
    context = _context(plex_config_root, fake_plex_sqlite)
    with open(context.database_path, "wb") as file_obj:
        file_obj.write(b"this is not an sqlite database" * 200)

    report = _service(_real_binary(fake_plex_sqlite)).diagnose(context)

    assert report.ok is False


def test_light_maintenance_runs_reindex_and_vacuum(plex_config_root, fake_plex_sqlite):
    context = _context(plex_config_root, fake_plex_sqlite)

    assert _service(_real_binary(fake_plex_sqlite)).light_maintenance(context) is True


def test_light_maintenance_failure_is_only_a_warning(plex_config_root):
    context = _context(plex_config_root, "/bin/Plex SQLite")

    assert _service(ScriptedBinary(["ok"])).light_maintenance(context) is False


def test_rebuild_is_repeatable_on_clean_database(plex_config_root, fake_plex_sqlite):
    context = _context(plex_config_root, fake_plex_sqlite)
    service = _service(_real_binary(fake_plex_sqlite))

    first = service.rebuild(context, "2024-05-01_10-00-00", backup_dir="/backups/a")
    second = service.rebuild(context, "2024-05-01_10-00-01", backup_dir="/backups/b")

    assert first.report.ok is True
    assert second.report.ok is True
    assert os.path.exists(first.broken_path)
    assert os.path.exists(second.broken_path)

    conn = sqlite3.connect(context.database_path)
    titles = [row[0] for row in conn.execute("SELECT title FROM metadata_items ORDER BY title")]
    conn.close()
    assert titles == ["Alien", "Heat", "Ran"]


def test_rebuild_leaves_artifacts_and_no_side_files(plex_config_root):
    context = _context(plex_config_root, "/bin/Plex SQLite")
    with open(context.database_path + "-wal", "wb") as file_obj:
        file_obj.write(b"wal")
    binary = ScriptedBinary(["ok"])

    result = _service(binary).rebuild(context, "2024-05-01_10-00-00", backup_dir="/backups/a")

    expected_broken = os.path.join(
        context.database_dir, "com.plexapp.plugins.library.broken.2024-05-01_10-00-00.db"
    )
    assert result.broken_path == expected_broken
    assert result.dump_path == os.path.join(
        context.database_dir, "com.plexapp.plugins.library.dump.2024-05-01_10-00-00.sql"
    )
    assert not os.path.exists(result.dump_path)
    assert os.path.exists(expected_broken)
    assert os.path.exists(expected_broken + "-wal")
    assert os.path.exists(context.database_path)
    assert not os.path.exists(context.database_path + "-wal")
    assert not os.path.exists(context.database_path + "-shm")
    assert not [name for name in os.listdir(context.database_dir) if name.endswith(".sql")]
    assert binary.calls[0][0] == "dump" and binary.calls[0][1] == expected_broken


def test_rebuild_dump_failure_is_fatal(plex_config_root):
    context = _context(plex_config_root, "/bin/Plex SQLite")
    binary = ScriptedBinary([], dump_ok=False)

    with pytest.raises(RepairError, match="Could not dump the corrupt database"):
        _service(binary).rebuild(context, "2024-05-01_10-00-00", backup_dir="/backups/a")

    assert not any(call[0] == "restore" for call in binary.calls)
    assert not os.path.exists(context.database_path)


def test_rebuild_restore_failure_is_fatal(plex_config_root):
    context = _context(plex_config_root, "/bin/Plex SQLite")

    with pytest.raises(RepairError, match="Rebuilding the database"):
        _service(ScriptedBinary([], restore_ok=False)).rebuild(
            context, "2024-05-01_10-00-00", backup_dir="/backups/a"
        )
