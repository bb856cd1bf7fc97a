"""Shared domain models for plexdbrepair."""

import os
from dataclasses import dataclass
from typing import Optional, Union

from .constants import INTEGRITY_OK


@dataclass(frozen=True)
class BareMetalProfile:
    """Plex installed as a host service."""

    service_name: str
    label: str = "bare-metal"


@dataclass(frozen=True)
class CustomBareMetalProfile:
    service_name: str
    label: str = "custom bare-metal"


@dataclass(frozen=True)
class OfficialContainerProfile:
    """Container built from the plexinc/pms-docker image."""

    container: str
    label: str = "official container"


@dataclass(frozen=True)
class CommunityContainerProfile:
    """Container built from the linuxserver/plex image."""

    container: str
    label: str = "community container"


@dataclass(frozen=True)
class CustomContainerProfile:
    container: str
    label: str = "custom container"


Profile = Union[
    BareMetalProfile,
    CustomBareMetalProfile,
    OfficialContainerProfile,
    CommunityContainerProfile,
    CustomContainerProfile,
]

BARE_METAL_PROFILES = (BareMetalProfile, CustomBareMetalProfile)
CONTAINER_PROFILES = (OfficialContainerProfile, CommunityContainerProfile, CustomContainerProfile)


def profile_container(profile: Profile) -> Optional[str]:
    if isinstance(profile, CONTAINER_PROFILES):
        return profile.container
    return None


@dataclass(frozen=True)
class DeploymentContext:
    """Paths and identifiers resolved once per run."""

    profile: Profile
    config_root: str
    database_dir: str
    database_path: str
    sqlite_binary: str

    @property
    def container(self) -> Optional[str]:
        return profile_container(self.profile)

    @property
    def database_name(self) -> str:
        return os.path.basename(self.database_path)


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of a best-effort detection, recording whether it fell back."""

    value: str
    detected: bool
    source: str


@dataclass(frozen=True)
class IntegrityReport:
    output: str

    @property
    def ok(self) -> bool:
        return is_integrity_ok(self.output)


@dataclass(frozen=True)
class RebuildResult:
    """Where the corrupt copy was kept and which dump the new database came from."""

    broken_path: str
    dump_path: str
    report: IntegrityReport


def is_integrity_ok(output: str) -> bool:
    """Return True only when the check printed the single ``ok`` line."""
    return output.strip() == INTEGRITY_OK
