import logging
import os
from datetime import datetime
from typing import Optional

import click
from rich.console import Console

from .constants import (
    BACKUP_ROOT,
    BARE_METAL_CONFIG_ROOT,
    COMMUNITY_IMAGE,
    CONTAINER_LOG_SINCE,
    CONTAINER_LOG_TAIL,
    DEFAULT_CONTAINER_NAME,
    HEALTH_URL,
    LOG_TAIL_LINES,
    OFFICIAL_IMAGE,
    SERVICE_NAME,
    STAGING_DIR,
    TIMESTAMP_FORMAT,
)
from .errors import RepairError
from .models import DeploymentContext, IntegrityReport
from .services.backup import BackupService
from .services.command_runner import CommandRunner
from .services.diagnostics import DiagnosticService
from .services.docker_runtime import DockerRuntimeService
from .services.filesystem import FileSystemService
from .services.health import HealthService
from .services.logs import LogService
from .services.manifest import ManifestService
from .services.permissions import PermissionService
from .services.prompts import Prompter
from .services.resolver import ProfileResolver
from .services.service_control import ServiceController
from .services.service_manager import ServiceManagerService
from .services.sqlite_binary import SQLiteBinary

console = Console()
logger = logging.getLogger("plexdbrepair")


class PlexDBRepair:
    def __init__(
        self,
        backup_root: str = BACKUP_ROOT,
        staging_dir: str = STAGING_DIR,
        bare_metal_config_root: str = BARE_METAL_CONFIG_ROOT,
        service_name: str = SERVICE_NAME,
        official_image: str = OFFICIAL_IMAGE,
        community_image: str = COMMUNITY_IMAGE,
        default_container_name: str = DEFAULT_CONTAINER_NAME,
        log_tail_lines: int = LOG_TAIL_LINES,
        container_log_since: str = CONTAINER_LOG_SINCE,
        container_log_tail: int = CONTAINER_LOG_TAIL,
        health_url: str = HEALTH_URL,
        prompter: Optional[Prompter] = None,
        command_runner: Optional[CommandRunner] = None,
    ):
        self.backup_root = os.path.expanduser(backup_root)
        self.timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
        self.manifest_file = os.path.join(self.backup_root, f"run-{self.timestamp}.json")
        self.context: Optional[DeploymentContext] = None
        self.current_step_name: Optional[str] = None
        self.service_stopped = False

        self.prompter = prompter or Prompter()
        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.manifest_service = ManifestService(manifest_file=self.manifest_file, logger=logger)
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.docker_runtime_service = DockerRuntimeService(
            logger=logger,
            console=console,
            run_cmd=self.command_runner.run,
        )
        self.service_manager = ServiceManagerService(logger=logger, run_cmd=self.command_runner.run)
        self.service_controller = ServiceController(
            logger=logger,
            console=console,
            service_manager=self.service_manager,
            docker_runtime=self.docker_runtime_service,
        )
        self.resolver = ProfileResolver(
            logger=logger,
            console=console,
            prompter=self.prompter,
            docker_runtime=self.docker_runtime_service,
            filesystem_service=self.filesystem_service,
            bare_metal_config_root=bare_metal_config_root,
            service_name=service_name,
            official_image=official_image,
            community_image=community_image,
            default_container_name=default_container_name,
            staging_dir=staging_dir,
        )
        self.backup_service = BackupService(
            logger=logger,
            console=console,
            filesystem_service=self.filesystem_service,
            backup_root=self.backup_root,
        )
        self.permission_service = PermissionService(
            logger=logger,
            console=console,
            filesystem_service=self.filesystem_service,
            service_manager=self.service_manager,
            docker_runtime=self.docker_runtime_service,
        )
        self.log_service = LogService(
            logger=logger,
            console=console,
            docker_runtime=self.docker_runtime_service,
            tail_lines=log_tail_lines,
            container_since=container_log_since,
            container_tail=container_log_tail,
        )
        self.health_service = HealthService(logger=logger, console=console, url=health_url)

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.manifest_service.step_started(name)
        self.current_step_name = name

        try:
            result = callback(*args, **kwargs)
        except Exception as exc:
            self.manifest_service.step_finished(name, "failed", error=str(exc))
            raise

        self.manifest_service.step_finished(name, "success")
        self.current_step_name = None
        return result

    def _skip(self, name: str, message: str, warning: bool = False):
        if warning:
            console.print(f"[yellow]Warning:[/yellow] {message}")
            logger.warning(message)
        else:
            console.print(f"[dim]{message}[/dim]")
            logger.info(message)
        self.manifest_service.step_started(name)
        self.manifest_service.step_finished(name, "declined")

    def build_diagnostic_service(self, context: DeploymentContext) -> DiagnosticService:
        return DiagnosticService(
            logger=logger,
            console=console,
            filesystem_service=self.filesystem_service,
            sqlite_binary=SQLiteBinary(context.sqlite_binary, self.command_runner.run),
        )

    def repair(
        self,
        context: DeploymentContext,
        diagnostics: DiagnosticService,
        report: IntegrityReport,
        backup_dir: str,
    ):
        if report.ok:
            if self.prompter.confirm("Database is healthy. Rebuild indexes and compact it (REINDEX + VACUUM)?"):
                self._run_step("light_maintenance", diagnostics.light_maintenance, context)
            else:
                self._skip("light_maintenance", "Light maintenance skipped.")
            return

        if not self.prompter.confirm("Database is damaged. Dump and rebuild it now?"):
            self._skip("rebuild", "Rebuild declined; the damaged database was left untouched.", warning=True)
            return

        result = self._run_step("rebuild", diagnostics.rebuild, context, self.timestamp, backup_dir)
        self.manifest_service.add_artifact("broken_database", result.broken_path)
        if not result.report.ok:
            logger.warning("Integrity check after rebuild still reports problems.")

    def post_check(self, context: DeploymentContext, diagnostics: DiagnosticService) -> IntegrityReport:
        """Offline integrity check after restart; relies on the backup taken earlier in this run."""
        self.service_controller.stop(context)
        self.service_stopped = True
        report = diagnostics.integrity_check(context, title="Post-restart integrity check")
        self.permission_service.reconcile(context)
        self.service_controller.start(context)
        self.service_stopped = False
        return report

    def run(self) -> int:
        exit_code = 1
        manifest_status = "failed"
        manifest_error: Optional[str] = None

        try:
            logger.info("Starting plexdbrepair (run %s)...", self.timestamp)
            self.manifest_service.start_run(run_id=self.timestamp)

            context = self._run_step("resolve_profile", self.resolver.resolve)
            self.context = context
            self.manifest_service.set_context(context)
            diagnostics = self.build_diagnostic_service(context)

            self._run_step("stop_service", self.service_controller.stop, context)
            self.service_stopped = True

            snapshot = self._run_step(
                "backup", self.backup_service.create_snapshot, context, self.timestamp
            )
            self.manifest_service.add_artifact("backup_dir", str(snapshot))

            report = self._run_step("diagnose", diagnostics.diagnose, context)
            self.manifest_service.set_verdict(report.ok)

            self.repair(context, diagnostics, report, str(snapshot))

            self._run_step("reconcile_permissions", self.permission_service.reconcile, context)
            self._run_step("start_service", self.service_controller.start, context)
            self.service_stopped = False

            if self.prompter.confirm("Stop Plex again for an offline integrity re-check?"):
                self._run_step("post_check", self.post_check, context, diagnostics)
            else:
                self._skip("post_check", "Post-restart integrity check skipped.")

            self.log_service.surface(context)
            self.health_service.probe()

            console.print(f"[bold green]Done. Backup kept at {snapshot}[/bold green]")
            manifest_status = "success"
            exit_code = 0
            return exit_code

        except (KeyboardInterrupt, click.Abort):
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            manifest_status = "aborted"
            manifest_error = "Operation cancelled by user."
            return exit_code
        except RepairError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            manifest_error = str(exc)
            return exit_code
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            manifest_error = str(exc)
            return exit_code
        finally:
            self.manifest_service.finalize(manifest_status, error=manifest_error)
            if manifest_status != "success" and self.service_stopped:
                logger.warning("Run ended while Plex was stopped; start it manually before retrying.")
            elif manifest_status != "success" and self.current_step_name:
                logger.warning(
                    "Run stopped during step '%s'. Plex may still be stopped; check it before retrying.",
                    self.current_step_name,
                )
