"""Surfaces recent container and Plex logs after a maintenance run."""

import os
from collections import deque
from typing import Deque

from rich.markup import escape

from plexdbrepair.constants import (
    CONTAINER_LOG_SINCE,
    CONTAINER_LOG_TAIL,
    LOG_TAIL_LINES,
    PLEX_LOG_SUBPATH,
)
from plexdbrepair.errors import RepairError
from plexdbrepair.models import BARE_METAL_PROFILES, DeploymentContext


class LogService:
    def __init__(
        self,
        logger,
        console,
        docker_runtime,
        tail_lines: int = LOG_TAIL_LINES,
        container_since: str = CONTAINER_LOG_SINCE,
        container_tail: int = CONTAINER_LOG_TAIL,
    ):
        self.logger = logger
        self.console = console
        self.docker_runtime = docker_runtime
        self.tail_lines = tail_lines
        self.container_since = container_since
        self.container_tail = container_tail

    @staticmethod
    def tail_file(path: str, lines: int) -> str:
        buffer: Deque[str] = deque(maxlen=lines)
        with open(path, "r", encoding="utf-8", errors="replace") as file_obj:
            for line in file_obj:
                buffer.append(line.rstrip("\n"))
        return "\n".join(buffer)

    def plex_log_path(self, context: DeploymentContext) -> str:
        return os.path.join(context.config_root, PLEX_LOG_SUBPATH)

    def surface(self, context: DeploymentContext):
        profile = context.profile

        if isinstance(profile, BARE_METAL_PROFILES):
            self.console.print(
                f"[dim]Service logs: journalctl -u {profile.service_name} --since '10 min ago'[/dim]"
            )
        elif context.container:
            self.console.print(
                f"[bold]Container logs ({context.container}, last {self.container_since}):[/bold]"
            )
            try:
                output = self.docker_runtime.logs(
                    context.container, self.container_since, self.container_tail
                )
                self.console.print(escape(output) or "[dim]<no output>[/dim]")
            except RepairError as exc:
                self.console.print(f"[yellow]{exc}[/yellow]")
                self.logger.warning(str(exc))

        log_path = self.plex_log_path(context)
        if not os.path.isfile(log_path):
            self.logger.debug("Plex log not found at %s", log_path)
            return

        self.console.print(f"[bold]Last {self.tail_lines} lines of {log_path}:[/bold]")
        try:
            self.console.print(escape(self.tail_file(log_path, self.tail_lines)))
        except OSError as exc:
            self.logger.warning("Could not read %s: %s", log_path, exc)
