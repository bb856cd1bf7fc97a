"""Actionable error catalog for plexdbrepair."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "database_dir_not_found": {
        "what": "Database directory not found: {path}",
        "next": "Check the config root you entered; it must contain the `Library` folder.",
    },
    "database_not_found": {
        "what": "Database file not found or not readable: {path}",
        "next": "Verify the config root and that the current user can read the database.",
    },
    "sqlite_binary_not_found": {
        "what": "Plex SQLite binary not found or not executable: {path}",
        "next": "Provide the full path to `Plex SQLite` from your Plex installation.",
    },
    "container_sqlite_not_found": {
        "what": "Could not locate `Plex SQLite` inside container {container}.",
        "next": "Make sure the container runs a Plex Media Server image.",
    },
    "service_control_failed": {
        "what": "Could not {action} {target}.",
        "next": "Check the service or container state manually; the database was not touched.",
    },
    "backup_failed": {
        "what": "Backup of {path} failed.",
        "next": "Free disk space or fix permissions on the backup directory and retry.",
    },
    "dump_failed": {
        "what": "Could not dump the corrupt database {path}.",
        "next": "Salvage manually from the broken file and the backup in {backup}.",
    },
    "rebuild_failed": {
        "what": "Rebuilding the database from {dump} failed.",
        "next": "Restore the backup from {backup} or retry the rebuild manually.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
