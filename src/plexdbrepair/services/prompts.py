"""Interactive prompts used by the resolver and orchestrator."""

from typing import Optional, Sequence

import click


class Prompter:
    """Thin wrapper over click prompts so callers can swap in scripted answers."""

    def menu(self, title: str, options: Sequence[str]) -> int:
        click.echo(title)
        for index, option in enumerate(options, start=1):
            click.echo(f"  {index}) {option}")
        return click.prompt("Select an option", type=click.IntRange(1, len(options)))

    def ask(self, text: str, default: Optional[str] = None) -> str:
        value = click.prompt(text, default=default, show_default=default is not None)
        return str(value).strip()

    def confirm(self, text: str) -> bool:
        return click.confirm(text, default=False)
