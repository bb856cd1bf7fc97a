"""Docker runtime services for plexdbrepair."""

import json
import subprocess
from typing import Any, Callable, Dict, List, Optional

from plexdbrepair.errors import RepairError


class DockerRuntimeService:
    """Wraps the docker CLI verbs used around a maintenance window."""

    def __init__(self, logger, console, run_cmd: Callable[..., subprocess.CompletedProcess]):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd

    def find_containers_by_image(self, image: str) -> List[str]:
        result = self.run_cmd(
            ["docker", "ps", "-a", "--filter", f"ancestor={image}", "--format", "{{.Names}}"],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def is_running(self, container: str) -> bool:
        result = self.run_cmd(
            ["docker", "inspect", "--format", "{{.State.Running}}", container],
            check=False,
            capture_output=True,
        )
        return result.returncode == 0 and result.stdout.strip().lower() == "true"

    def start(self, container: str):
        self.run_cmd(["docker", "start", container], check=True, capture_output=True)

    def stop(self, container: str):
        self.run_cmd(["docker", "stop", container], check=True, capture_output=True)

    def _inspect_json(self, container: str, template: str) -> Any:
        result = self.run_cmd(
            ["docker", "inspect", "--format", template, container],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0 or not result.stdout.strip():
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            self.logger.warning("Could not parse docker inspect output for %s", container)
            return None

    def inspect_mounts(self, container: str) -> List[Dict[str, Any]]:
        mounts = self._inspect_json(container, "{{json .Mounts}}")
        if not isinstance(mounts, list):
            return []
        return [mount for mount in mounts if isinstance(mount, dict)]

    def find_mount(self, container: str, destination: str) -> Optional[Dict[str, Any]]:
        for mount in self.inspect_mounts(container):
            if mount.get("Destination") == destination:
                return mount
        return None

    def inspect_env(self, container: str) -> Dict[str, str]:
        entries = self._inspect_json(container, "{{json .Config.Env}}")
        env: Dict[str, str] = {}
        if not isinstance(entries, list):
            return env
        for entry in entries:
            if not isinstance(entry, str) or "=" not in entry:
                continue
            key, value = entry.split("=", 1)
            env[key] = value
        return env

    def find_files(self, container: str, root: str, name: str) -> List[str]:
        result = self.run_cmd(
            ["docker", "exec", container, "find", root, "-type", "f", "-name", name],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def copy_from_container(self, container: str, source: str, destination: str):
        self.run_cmd(
            ["docker", "cp", f"{container}:{source}", destination],
            check=True,
            capture_output=True,
        )

    def logs(self, container: str, since: str, tail: int) -> str:
        result = self.run_cmd(
            ["docker", "logs", "--since", since, "--tail", str(tail), container],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            raise RepairError(f"Could not read logs for container {container}.")
        # docker logs writes the container's stderr stream to our stderr.
        return "\n".join(part for part in (result.stdout, result.stderr) if part).rstrip()
