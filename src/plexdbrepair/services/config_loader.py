"""YAML configuration for plexdbrepair defaults."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from plexdbrepair.errors import RepairError


class ConfigLoader:
    """Reads an optional YAML file overriding built-in defaults.

    Only deployment defaults live here (paths, names, log sizes); the run
    itself is always driven interactively.
    """

    KEY_TYPES = {
        "verbose": bool,
        "log_file": str,
        "backup_root": str,
        "staging_dir": str,
        "bare_metal_config_root": str,
        "service_name": str,
        "official_image": str,
        "community_image": str,
        "default_container_name": str,
        "log_tail_lines": int,
        "container_log_since": str,
        "container_log_tail": int,
        "health_url": str,
    }
    SUPPORTED_KEYS = set(KEY_TYPES)

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.is_file():
            raise RepairError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise RepairError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise RepairError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(str(key) for key in set(parsed) - self.SUPPORTED_KEYS)
        if unknown:
            raise RepairError(f"Unknown configuration keys: {', '.join(unknown)}")

        for key, value in parsed.items():
            self._check_type(key, value)
        return parsed

    def _check_type(self, key: str, value: Any):
        expected = self.KEY_TYPES[key]
        # YAML booleans are ints to isinstance; keep them out of numeric keys.
        if isinstance(value, bool) and expected is not bool:
            valid = False
        else:
            valid = isinstance(value, expected)
        if not valid:
            raise RepairError(
                f"Configuration key '{key}' must be of type {expected.__name__}, got {type(value).__name__}."
            )
        if expected is int and value < 0:
            raise RepairError(f"Configuration key '{key}' must not be negative.")
