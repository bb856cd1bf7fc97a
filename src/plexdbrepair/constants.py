"""Static defaults for plexdbrepair."""

import os

DIR_MODE = 0o755
SCRIPT_MODE = 0o755

DATABASE_NAME = "com.plexapp.plugins.library.db"
SIDE_FILE_SUFFIXES = ("-wal", "-shm")
DATABASE_SUBPATH = os.path.join(
    "Library", "Application Support", "Plex Media Server", "Plug-in Support", "Databases"
)
LIBRARY_SUBPATH = "Library"
PLEX_LOG_SUBPATH = os.path.join(
    "Library", "Application Support", "Plex Media Server", "Logs", "Plex Media Server.log"
)

SQLITE_BINARY_NAME = "Plex SQLite"
BARE_METAL_SQLITE_GLOBS = (
    "/usr/lib/plexmediaserver/Plex SQLite",
    "/usr/lib/plexmediaserver/*/Plex SQLite",
    "/opt/plexmediaserver/Plex SQLite",
)
CONTAINER_PLEX_ROOT = "/usr/lib/plexmediaserver"
CONTAINER_CONFIG_MOUNT = "/config"

BARE_METAL_CONFIG_ROOT = "/var/lib/plexmediaserver"
CONTAINER_CONFIG_ROOT = "/opt/plex/config"
SERVICE_NAME = "plexmediaserver"
SERVER_PROCESS_NAME = "Plex Media Server"
DEFAULT_RUN_AS_USER = "plex"

OFFICIAL_IMAGE = "plexinc/pms-docker"
COMMUNITY_IMAGE = "linuxserver/plex"
DEFAULT_CONTAINER_NAME = "plex"

OFFICIAL_UID_ENV = "PLEX_UID"
OFFICIAL_GID_ENV = "PLEX_GID"
COMMUNITY_UID_ENV = "PUID"
COMMUNITY_GID_ENV = "PGID"
COMMUNITY_DEFAULT_UID = 911
COMMUNITY_DEFAULT_GID = 911

BACKUP_ROOT = os.path.join("~", "plex_db_backups")
STAGING_DIR = os.path.join("~", ".plexdbrepair")
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

LOG_TAIL_LINES = 50
CONTAINER_LOG_SINCE = "10m"
CONTAINER_LOG_TAIL = 100
HEALTH_URL = "http://127.0.0.1:32400/identity"
HEALTH_TIMEOUT = 10.0

INTEGRITY_OK = "ok"
