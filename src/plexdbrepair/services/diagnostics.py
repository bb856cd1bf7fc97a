"""Integrity diagnostics, light maintenance and dump-and-rebuild."""

import os

from rich.markup import escape

from plexdbrepair.constants import SIDE_FILE_SUFFIXES
from plexdbrepair.errors import RepairError
from plexdbrepair.errors_catalog import actionable_error
from plexdbrepair.models import DeploymentContext, IntegrityReport, RebuildResult


class DiagnosticService:
    """Drives the repair binary against the offline database."""

    def __init__(self, logger, console, filesystem_service, sqlite_binary):
        self.logger = logger
        self.console = console
        self.filesystem_service = filesystem_service
        self.sqlite = sqlite_binary

    def _show(self, title: str, report: IntegrityReport):
        colour = "green" if report.ok else "red"
        self.console.print(f"[bold]{title}:[/bold]")
        self.console.print(f"[{colour}]{escape(report.output) or '<no output>'}[/{colour}]")
        self.logger.debug("%s output: %s", title, report.output)

    def integrity_check(self, context: DeploymentContext, title: str = "Integrity check") -> IntegrityReport:
        report = self.sqlite.integrity_check(context.database_path)
        self._show(title, report)
        return report

    def diagnose(self, context: DeploymentContext) -> IntegrityReport:
        self.console.print("[blue]Running integrity diagnostics...[/blue]")
        self.logger.info("Running integrity_check and quick_check on %s", context.database_path)

        report = self.integrity_check(context)
        quick = self.sqlite.quick_check(context.database_path)
        self._show("Quick check", quick)

        if report.ok:
            self.console.print("[green]Database integrity: OK[/green]")
        else:
            self.console.print("[bold red]Database integrity: NOT OK[/bold red]")
        self.logger.info("Integrity verdict: %s", "OK" if report.ok else "NOT OK")
        return report

    def light_maintenance(self, context: DeploymentContext) -> bool:
        self.console.print("[blue]Rebuilding indexes and compacting database...[/blue]")
        self.logger.info("Running REINDEX and VACUUM on %s", context.database_path)

        if self.sqlite.reindex_and_vacuum(context.database_path):
            self.console.print("[green]REINDEX and VACUUM complete.[/green]")
            return True

        message = "Warning: REINDEX/VACUUM failed. The backup is intact; continuing."
        self.console.print(f"[yellow]{message}[/yellow]")
        self.logger.warning(message)
        return False

    @staticmethod
    def broken_path(context: DeploymentContext, timestamp: str) -> str:
        stem, _ = os.path.splitext(context.database_path)
        return f"{stem}.broken.{timestamp}.db"

    @staticmethod
    def dump_path(context: DeploymentContext, timestamp: str) -> str:
        stem, _ = os.path.splitext(context.database_path)
        return f"{stem}.dump.{timestamp}.sql"

    def rebuild(self, context: DeploymentContext, timestamp: str, backup_dir: str) -> RebuildResult:
        database_path = context.database_path
        broken_path = self.broken_path(context, timestamp)
        dump_path = self.dump_path(context, timestamp)

        self.console.print("[blue]Rebuilding database from a full dump...[/blue]")
        self.logger.info("Moving corrupt database aside: %s", broken_path)
        try:
            os.rename(database_path, broken_path)
            # Journals travel with the corrupt file so the dump sees committed WAL pages.
            for suffix in SIDE_FILE_SUFFIXES:
                if os.path.exists(f"{database_path}{suffix}"):
                    os.rename(f"{database_path}{suffix}", f"{broken_path}{suffix}")
        except OSError as exc:
            raise RepairError(f"Could not rename {database_path} to {broken_path}: {exc}") from exc

        self.console.print("[blue]Dumping corrupt database...[/blue]")
        if not self.sqlite.dump(broken_path, dump_path) or not os.path.exists(dump_path):
            raise RepairError(actionable_error("dump_failed", path=broken_path, backup=backup_dir))

        self.console.print("[blue]Replaying dump into a new database...[/blue]")
        if not self.sqlite.restore(dump_path, database_path):
            raise RepairError(actionable_error("rebuild_failed", dump=dump_path, backup=backup_dir))

        os.remove(dump_path)
        # The new file must not pick up journals left by the corrupt one.
        self.filesystem_service.remove_side_files(database_path)

        report = self.integrity_check(context, title="Integrity check after rebuild")
        self.console.print(f"[green]Rebuild complete. Corrupt copy kept at {broken_path}[/green]")
        self.logger.info("Rebuild complete, post-rebuild verdict: %s", "OK" if report.ok else "NOT OK")
        return RebuildResult(broken_path=broken_path, dump_path=dump_path, report=report)
