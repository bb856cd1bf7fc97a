"""Deployment profile and path resolution."""

import glob
import os
from pathlib import PurePosixPath
from typing import Optional, Sequence, Tuple

from packaging import version

from plexdbrepair.constants import (
    BARE_METAL_CONFIG_ROOT,
    BARE_METAL_SQLITE_GLOBS,
    COMMUNITY_IMAGE,
    CONTAINER_CONFIG_MOUNT,
    CONTAINER_CONFIG_ROOT,
    CONTAINER_PLEX_ROOT,
    DATABASE_NAME,
    DATABASE_SUBPATH,
    DEFAULT_CONTAINER_NAME,
    OFFICIAL_IMAGE,
    SCRIPT_MODE,
    SERVICE_NAME,
    SQLITE_BINARY_NAME,
    STAGING_DIR,
)
from plexdbrepair.errors import RepairError
from plexdbrepair.errors_catalog import actionable_error
from plexdbrepair.models import (
    BARE_METAL_PROFILES,
    BareMetalProfile,
    CommunityContainerProfile,
    CustomBareMetalProfile,
    CustomContainerProfile,
    DeploymentContext,
    DetectionResult,
    OfficialContainerProfile,
    Profile,
)

MENU_OPTIONS = (
    "Bare-metal (native service)",
    "Official container (plexinc/pms-docker)",
    "Community container (linuxserver/plex)",
    "Custom (container or bare-metal)",
)


def _version_key(path: str) -> Tuple[version.Version, str]:
    best = version.Version("0")
    for part in PurePosixPath(path).parts:
        try:
            candidate = version.Version(part.split("-")[0])
        except version.InvalidVersion:
            continue
        best = max(best, candidate)
    return best, path


class ProfileResolver:
    """Builds a verified DeploymentContext from menu answers and detection."""

    def __init__(
        self,
        logger,
        console,
        prompter,
        docker_runtime,
        filesystem_service,
        bare_metal_config_root: str = BARE_METAL_CONFIG_ROOT,
        service_name: str = SERVICE_NAME,
        official_image: str = OFFICIAL_IMAGE,
        community_image: str = COMMUNITY_IMAGE,
        default_container_name: str = DEFAULT_CONTAINER_NAME,
        staging_dir: str = STAGING_DIR,
        sqlite_globs: Sequence[str] = BARE_METAL_SQLITE_GLOBS,
    ):
        self.logger = logger
        self.console = console
        self.prompter = prompter
        self.docker_runtime = docker_runtime
        self.filesystem_service = filesystem_service
        self.bare_metal_config_root = bare_metal_config_root
        self.service_name = service_name
        self.official_image = official_image
        self.community_image = community_image
        self.default_container_name = default_container_name
        self.staging_dir = os.path.expanduser(staging_dir)
        self.sqlite_globs = tuple(sqlite_globs)

    @property
    def staged_binary_path(self) -> str:
        return os.path.join(self.staging_dir, SQLITE_BINARY_NAME)

    def resolve(self) -> DeploymentContext:
        choice = self.prompter.menu("Select your Plex installation type:", MENU_OPTIONS)
        profile = self.select_profile(choice)
        self.logger.info("Selected profile: %s", profile.label)

        if isinstance(profile, BARE_METAL_PROFILES):
            config_root = self.prompter.ask(
                "Plex config root (contains Library)", default=self.bare_metal_config_root
            )
        else:
            config_root = self.prompt_container_config_root(profile.container)

        database_dir, database_path = self.database_paths(config_root)

        if isinstance(profile, BARE_METAL_PROFILES):
            sqlite_binary = self.find_host_binary()
        else:
            sqlite_binary = self.stage_container_binary(profile.container)

        self.ensure_executable(sqlite_binary)

        context = DeploymentContext(
            profile=profile,
            config_root=config_root,
            database_dir=database_dir,
            database_path=database_path,
            sqlite_binary=sqlite_binary,
        )
        self.console.print(f"[green]Database: {database_path}[/green]")
        self.console.print(f"[green]Plex SQLite: {sqlite_binary}[/green]")
        return context

    def select_profile(self, choice: int) -> Profile:
        if choice == 1:
            return BareMetalProfile(service_name=self.service_name)
        if choice == 2:
            return OfficialContainerProfile(container=self.prompt_container(self.official_image))
        if choice == 3:
            return CommunityContainerProfile(container=self.prompt_container(self.community_image))
        if choice == 4:
            if self.prompter.confirm("Does your custom installation run in a container?"):
                container = self.prompter.ask("Container name", default=self.default_container_name)
                return CustomContainerProfile(container=container)
            service_name = self.prompter.ask("Service name", default=self.service_name)
            return CustomBareMetalProfile(service_name=service_name)
        raise RepairError(f"Invalid menu choice: {choice}")

    def detect_container(self, image: str) -> DetectionResult:
        matches = self.docker_runtime.find_containers_by_image(image)
        if matches:
            return DetectionResult(value=matches[0], detected=True, source=f"detected from image {image}")
        return DetectionResult(value=self.default_container_name, detected=False, source="default")

    def prompt_container(self, image: str) -> str:
        detection = self.detect_container(image)
        self.console.print(f"[dim]Container name {detection.value!r} ({detection.source}).[/dim]")
        self.logger.info("Container candidate %s (%s)", detection.value, detection.source)
        return self.prompter.ask("Container name", default=detection.value)

    def detect_config_root(self, container: str) -> DetectionResult:
        mount = self.docker_runtime.find_mount(container, CONTAINER_CONFIG_MOUNT)
        if not mount or not mount.get("Source"):
            return DetectionResult(value=CONTAINER_CONFIG_ROOT, detected=False, source="default")

        if "RW" not in mount:
            self.logger.warning("Could not determine whether %s is mounted read-write.", CONTAINER_CONFIG_MOUNT)
        elif not mount["RW"]:
            self.logger.warning("%s is mounted read-only in %s.", CONTAINER_CONFIG_MOUNT, container)
        return DetectionResult(
            value=mount["Source"], detected=True, source=f"mount {CONTAINER_CONFIG_MOUNT} of {container}"
        )

    def prompt_container_config_root(self, container: str) -> str:
        detection = self.detect_config_root(container)
        self.console.print(f"[dim]Config path {detection.value} ({detection.source}).[/dim]")
        return self.prompter.ask("Host path of the Plex config directory", default=detection.value)

    def database_paths(self, config_root: str) -> Tuple[str, str]:
        database_dir = os.path.join(config_root, DATABASE_SUBPATH)
        if not os.path.isdir(database_dir):
            raise RepairError(actionable_error("database_dir_not_found", path=database_dir))

        database_path = os.path.join(database_dir, DATABASE_NAME)
        if not os.path.isfile(database_path) or not os.access(database_path, os.R_OK):
            raise RepairError(actionable_error("database_not_found", path=database_path))
        return database_dir, database_path

    def find_host_binary(self) -> str:
        for pattern in self.sqlite_globs:
            for candidate in sorted(glob.glob(pattern)):
                if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
                    self.logger.info("Found Plex SQLite at %s", candidate)
                    return candidate
                self.logger.debug("Skipping non-executable candidate %s", candidate)

        self.console.print("[yellow]Plex SQLite was not found in the usual locations.[/yellow]")
        path = self.prompter.ask("Full path to Plex SQLite")
        if not path or not os.path.isfile(path):
            raise RepairError(actionable_error("sqlite_binary_not_found", path=path or "<empty>"))
        return path

    @staticmethod
    def ensure_executable(path: str):
        if not os.path.isfile(path) or not os.access(path, os.X_OK):
            raise RepairError(actionable_error("sqlite_binary_not_found", path=path))

    def locate_container_binary(self, container: str) -> Optional[str]:
        candidates = self.docker_runtime.find_files(container, CONTAINER_PLEX_ROOT, SQLITE_BINARY_NAME)
        if not candidates:
            return None
        return max(candidates, key=_version_key)

    def stage_container_binary(self, container: str) -> str:
        staged = self.staged_binary_path
        if os.path.isfile(staged):
            self.logger.info("Reusing staged Plex SQLite at %s", staged)
            return staged

        self.console.print(f"[blue]Copying Plex SQLite out of container {container}...[/blue]")
        was_running = self.docker_runtime.is_running(container)
        if not was_running:
            self.logger.info("Starting %s temporarily to copy Plex SQLite.", container)
            self.docker_runtime.start(container)

        try:
            source = self.locate_container_binary(container)
            if source is None:
                raise RepairError(actionable_error("container_sqlite_not_found", container=container))

            os.makedirs(self.staging_dir, exist_ok=True)
            self.docker_runtime.copy_from_container(container, source, staged)
            self.filesystem_service.set_permissions(staged, SCRIPT_MODE)
        finally:
            if not was_running:
                self.logger.info("Stopping %s again.", container)
                self.docker_runtime.stop(container)

        self.console.print(f"[green]Plex SQLite staged at {staged}[/green]")
        return staged
