"""Per-run manifest written next to the backup snapshots."""

import json
import os
import socket
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from plexdbrepair.models import DeploymentContext


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _elapsed(started_at: Optional[str], finished_at: str) -> Optional[float]:
    if not started_at:
        return None
    delta = datetime.fromisoformat(finished_at) - datetime.fromisoformat(started_at)
    return delta.total_seconds()


class ManifestService:
    """Records what a maintenance run did so it can be audited afterwards.

    Every mutation is flushed to disk immediately: a run that dies halfway
    still leaves a manifest naming the step it was in.
    """

    def __init__(self, manifest_file: str, logger):
        self.manifest_file = manifest_file
        self.logger = logger
        self.manifest: Dict[str, Any] = {
            "run_id": None,
            "host": socket.gethostname(),
            "status": "running",
            "started_at": None,
            "finished_at": None,
            "duration_seconds": None,
            "context": {},
            "verdict": None,
            "steps": [],
            "artifacts": {},
            "error": None,
        }

    def start_run(self, run_id: str):
        self.manifest.update(run_id=run_id, status="running", started_at=_now())
        self.write()

    def set_context(self, context: DeploymentContext):
        self.manifest["context"] = {
            "profile": context.profile.label,
            "container": context.container,
            "config_root": context.config_root,
            "database_path": context.database_path,
            "sqlite_binary": context.sqlite_binary,
        }
        self.write()

    def set_verdict(self, ok: bool):
        self.manifest["verdict"] = "ok" if ok else "not_ok"
        self.write()

    def step_started(self, step_name: str):
        self.manifest["steps"].append({"name": step_name, "status": "running", "started_at": _now()})
        self.write()

    def step_finished(self, step_name: str, status: str, error: Optional[str] = None):
        running = [
            step for step in self.manifest["steps"] if step["name"] == step_name and step["status"] == "running"
        ]
        if not running:
            self.logger.warning("Manifest has no running step named '%s'.", step_name)
            return

        step = running[-1]
        finished_at = _now()
        step.update(
            status=status,
            finished_at=finished_at,
            duration_seconds=_elapsed(step["started_at"], finished_at),
        )
        if error:
            step["error"] = error
        self.write()

    def add_artifact(self, key: str, value: str):
        self.manifest["artifacts"][key] = value
        self.write()

    def finalize(self, status: str, error: Optional[str] = None):
        finished_at = _now()
        self.manifest.update(
            status=status,
            finished_at=finished_at,
            duration_seconds=_elapsed(self.manifest["started_at"], finished_at),
            error=error,
        )
        self.write()

    def write(self):
        # Temp file in the target directory keeps os.replace on one filesystem.
        directory = os.path.dirname(self.manifest_file) or "."
        temp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix=".run-manifest-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.manifest, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.manifest_file)
        except OSError as exc:
            self.logger.warning("Could not write manifest file '%s': %s", self.manifest_file, exc)
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)
