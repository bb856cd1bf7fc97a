"""Host service manager access for bare-metal installs."""

import shutil
import subprocess
from typing import Callable, List, Optional

from plexdbrepair.constants import DEFAULT_RUN_AS_USER, SERVER_PROCESS_NAME
from plexdbrepair.errors import RepairError


class ServiceManagerService:
    """Controls the Plex service through systemd or the legacy `service` wrapper."""

    def __init__(self, logger, run_cmd: Callable[..., subprocess.CompletedProcess], which=shutil.which):
        self.logger = logger
        self.run_cmd = run_cmd
        self.which = which

    def has_systemd(self) -> bool:
        return self.which("systemctl") is not None

    def _control_cmd(self, action: str, service_name: str) -> List[str]:
        if self.has_systemd():
            return ["systemctl", action, service_name]
        self.logger.debug("systemctl not found, falling back to `service`.")
        return ["service", service_name, action]

    def stop(self, service_name: str):
        self.run_cmd(self._control_cmd("stop", service_name), check=True, capture_output=True)

    def start(self, service_name: str):
        self.run_cmd(self._control_cmd("start", service_name), check=True, capture_output=True)

    def _query(self, cmd: List[str]) -> Optional[subprocess.CompletedProcess]:
        # Lookups only feed a fallback chain; a missing tool means "unknown".
        try:
            result = self.run_cmd(cmd, check=False, capture_output=True)
        except RepairError as exc:
            self.logger.debug("Lookup %s unavailable: %s", cmd[0], exc)
            return None
        if result.returncode != 0:
            return None
        return result

    def unit_user(self, service_name: str) -> Optional[str]:
        if not self.has_systemd():
            return None
        result = self._query(["systemctl", "show", "-p", "User", "--value", service_name])
        if result is None:
            return None
        return result.stdout.strip() or None

    def process_user(self) -> Optional[str]:
        result = self._query(["ps", "-o", "user=", "-C", SERVER_PROCESS_NAME])
        if result is None:
            return None
        for line in result.stdout.splitlines():
            if line.strip():
                return line.strip()
        return None

    def run_as_user(self, service_name: str) -> str:
        """Resolve the account Plex runs as, falling back to the conventional name."""
        user = self.unit_user(service_name)
        if user:
            self.logger.info("Service %s runs as %s (unit definition).", service_name, user)
            return user

        user = self.process_user()
        if user:
            self.logger.info("Plex process runs as %s.", user)
            return user

        self.logger.info("Could not determine service user, using default %s.", DEFAULT_RUN_AS_USER)
        return DEFAULT_RUN_AS_USER
