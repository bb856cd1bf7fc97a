"""Post-start reachability probe for the Plex HTTP endpoint."""

import requests

from plexdbrepair.constants import HEALTH_TIMEOUT


class HealthService:
    """Checks once that Plex answers after a restart; never fails the run."""

    def __init__(self, logger, console, url: str, timeout: float = HEALTH_TIMEOUT, requests_module=requests):
        self.logger = logger
        self.console = console
        self.url = url
        self.timeout = timeout
        self.requests = requests_module

    def probe(self) -> bool:
        if not self.url:
            return False

        try:
            response = self.requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            response.close()
        except self.requests.RequestException as exc:
            message = f"Plex did not answer at {self.url} yet: {exc}"
            self.console.print(f"[yellow]Warning:[/yellow] {message}")
            self.logger.warning(message)
            return False

        self.console.print(f"[green]Plex is answering at {self.url}.[/green]")
        return True
