"""Domain errors for plexdbrepair."""


class RepairError(RuntimeError):
    """Raised when maintenance cannot continue safely."""
