"""Stops and starts the process that owns the database."""

from plexdbrepair.errors import RepairError
from plexdbrepair.errors_catalog import actionable_error
from plexdbrepair.models import (
    BARE_METAL_PROFILES,
    CONTAINER_PROFILES,
    DeploymentContext,
)


class ServiceController:
    """Dispatches stop/start to the service manager or the container runtime."""

    PROGRESS = {"stop": "Stopping", "start": "Starting"}

    def __init__(self, logger, console, service_manager, docker_runtime):
        self.logger = logger
        self.console = console
        self.service_manager = service_manager
        self.docker_runtime = docker_runtime

    def stop(self, context: DeploymentContext):
        self._control(context, "stop")
        self.console.print("[green]Plex stopped.[/green]")

    def start(self, context: DeploymentContext):
        self._control(context, "start")
        self.console.print("[green]Plex started.[/green]")

    def _control(self, context: DeploymentContext, action: str):
        profile = context.profile

        if isinstance(profile, BARE_METAL_PROFILES):
            target = f"service {profile.service_name}"
            handler = getattr(self.service_manager, action)
            name = profile.service_name
        elif isinstance(profile, CONTAINER_PROFILES):
            target = f"container {profile.container}"
            handler = getattr(self.docker_runtime, action)
            name = profile.container
        else:
            raise RepairError(f"Unsupported profile: {profile!r}")

        progress = self.PROGRESS[action]
        self.console.print(f"[blue]{progress} {target}...[/blue]")
        self.logger.info("%s %s", progress, target)
        try:
            handler(name)
        except RepairError as exc:
            raise RepairError(
                f"{actionable_error('service_control_failed', action=action, target=target)}\n{exc}"
            ) from exc
