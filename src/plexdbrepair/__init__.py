"""
plexdbrepair - Offline Plex Media Server database maintenance tool
"""

__version__ = "0.3.0"

from .core import PlexDBRepair, RepairError

__all__ = ["PlexDBRepair", "RepairError"]
