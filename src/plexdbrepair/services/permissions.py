"""Ownership and mode reconciliation per deployment profile."""

import os
import pwd
import stat
from typing import Optional, Tuple

from plexdbrepair.constants import (
    COMMUNITY_DEFAULT_GID,
    COMMUNITY_DEFAULT_UID,
    COMMUNITY_GID_ENV,
    COMMUNITY_UID_ENV,
    LIBRARY_SUBPATH,
    OFFICIAL_GID_ENV,
    OFFICIAL_UID_ENV,
)
from plexdbrepair.errors import RepairError
from plexdbrepair.models import (
    BARE_METAL_PROFILES,
    CommunityContainerProfile,
    CustomContainerProfile,
    DeploymentContext,
    OfficialContainerProfile,
)

DIR_GROUP_BITS = stat.S_IRGRP | stat.S_IWGRP | stat.S_IXGRP
FILE_GROUP_BITS = stat.S_IRGRP | stat.S_IWGRP


def _parse_id(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class PermissionService:
    """Restores the ownership Plex expects and normalizes database modes."""

    def __init__(
        self,
        logger,
        console,
        filesystem_service,
        service_manager,
        docker_runtime,
        user_lookup=pwd.getpwnam,
    ):
        self.logger = logger
        self.console = console
        self.filesystem_service = filesystem_service
        self.service_manager = service_manager
        self.docker_runtime = docker_runtime
        self.user_lookup = user_lookup

    def reconcile(self, context: DeploymentContext):
        self.console.print("[blue]Fixing ownership and permissions...[/blue]")
        profile = context.profile

        if isinstance(profile, BARE_METAL_PROFILES):
            target, ids = self._bare_metal_owner(context, profile.service_name)
        elif isinstance(profile, CommunityContainerProfile):
            target, ids = context.config_root, self._community_owner(profile.container)
        elif isinstance(profile, (OfficialContainerProfile, CustomContainerProfile)):
            target, ids = context.config_root, self._official_owner(context, profile.container)
        else:
            raise RepairError(f"Unsupported profile: {profile!r}")

        if ids is None:
            message = "Warning: Could not determine UID/GID; skipping ownership fix."
            self.console.print(f"[yellow]{message}[/yellow]")
            self.logger.warning(message)
        else:
            uid, gid = ids
            self.logger.info("Changing ownership of %s to %s:%s", target, uid, gid)
            self.filesystem_service.chown_tree(target, uid, gid)

        self.normalize_modes(context)
        self.console.print("[green]Permissions reconciled.[/green]")

    def normalize_modes(self, context: DeploymentContext):
        self.filesystem_service.remove_side_files(context.database_path)
        self.filesystem_service.add_mode_bits(context.database_dir, DIR_GROUP_BITS)
        for path in self.filesystem_service.database_family(context.database_path):
            self.filesystem_service.add_mode_bits(path, FILE_GROUP_BITS)

    def _bare_metal_owner(
        self, context: DeploymentContext, service_name: str
    ) -> Tuple[str, Optional[Tuple[int, int]]]:
        library_dir = os.path.join(context.config_root, LIBRARY_SUBPATH)
        owner = self.filesystem_service.owner_of(library_dir)
        if owner is not None and owner[0] != 0:
            self.logger.debug("Library owner is %s:%s", *owner)
            return library_dir, owner

        user = self.service_manager.run_as_user(service_name)
        try:
            entry = self.user_lookup(user)
        except KeyError:
            self.logger.warning("User %s does not exist on this host.", user)
            return library_dir, None
        return library_dir, (entry.pw_uid, entry.pw_gid)

    def _community_owner(self, container: str) -> Tuple[int, int]:
        env = self.docker_runtime.inspect_env(container)
        uid = _parse_id(env.get(COMMUNITY_UID_ENV))
        gid = _parse_id(env.get(COMMUNITY_GID_ENV))
        if uid is None:
            self.logger.info("%s not set, using default %s", COMMUNITY_UID_ENV, COMMUNITY_DEFAULT_UID)
            uid = COMMUNITY_DEFAULT_UID
        if gid is None:
            self.logger.info("%s not set, using default %s", COMMUNITY_GID_ENV, COMMUNITY_DEFAULT_GID)
            gid = COMMUNITY_DEFAULT_GID
        return uid, gid

    def _official_owner(self, context: DeploymentContext, container: str) -> Optional[Tuple[int, int]]:
        env = self.docker_runtime.inspect_env(container)
        uid = _parse_id(env.get(OFFICIAL_UID_ENV))
        gid = _parse_id(env.get(OFFICIAL_GID_ENV))
        if uid is not None and gid is not None:
            return uid, gid

        owner = self.filesystem_service.owner_of(context.config_root)
        if owner is not None:
            self.logger.info("Using owner of %s: %s:%s", context.config_root, *owner)
        return owner
