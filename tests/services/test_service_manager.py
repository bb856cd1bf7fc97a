import logging
import subprocess

from plexdbrepair.errors import RepairError
from plexdbrepair.services.command_runner import CommandRunner
from plexdbrepair.services.service_manager import ServiceManagerService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None


def _manager(outputs, systemd=True):
    calls = []

    def fake_run_cmd(cmd, check=True, capture_output=False):
        calls.append(cmd)
        returncode, stdout = outputs.get(cmd[0], (0, ""))
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")

    which = (lambda _name: "/usr/bin/systemctl") if systemd else (lambda _name: None)
    return ServiceManagerService(DummyLogger(), run_cmd=fake_run_cmd, which=which), calls


def test_run_as_user_reads_unit_definition():
    manager, calls = _manager({"systemctl": (0, "plexuser\n")})

    assert manager.run_as_user("plexmediaserver") == "plexuser"
    assert calls == [["systemctl", "show", "-p", "User", "--value", "plexmediaserver"]]


def test_run_as_user_falls_back_to_running_process():
    manager, calls = _manager({"systemctl": (0, "\n"), "ps": (0, "media\n")})

    assert manager.run_as_user("plexmediaserver") == "media"
    assert calls[-1] == ["ps", "-o", "user=", "-C", "Plex Media Server"]


def test_run_as_user_defaults_to_plex():
    manager, _ = _manager({"ps": (1, "")}, systemd=False)

    assert manager.run_as_user("plexmediaserver") == "plex"


def test_run_as_user_defaults_to_plex_when_ps_is_missing(monkeypatch):
    monkeypatch.setenv("PATH", "/nonexistent")
    runner = CommandRunner(logger=logging.getLogger("plexdbrepair.tests"))
    manager = ServiceManagerService(DummyLogger(), run_cmd=runner.run, which=lambda _name: None)

    assert manager.process_user() is None
    assert manager.run_as_user("plexmediaserver") == "plex"


def test_unit_user_lookup_failure_falls_through_to_process_user():
    calls = []

    def fake_run_cmd(cmd, check=True, capture_output=False):
        calls.append(cmd[0])
        if cmd[0] == "systemctl":
            raise RepairError("Required command not found: systemctl. Please install it and try again.")
        return subprocess.CompletedProcess(cmd, 0, stdout="media\n", stderr="")

    manager = ServiceManagerService(DummyLogger(), run_cmd=fake_run_cmd, which=lambda _name: "/bin/systemctl")

    assert manager.run_as_user("plexmediaserver") == "media"
    assert calls == ["systemctl", "ps"]
