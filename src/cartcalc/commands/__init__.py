"""Subcommand modules for cartcalc.

``register_commands()`` imports each command module on registration so
the command set lives in one place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from cartcalc.commands.eligible import eligible
    from cartcalc.commands.totals import totals

    cli.add_command(totals)
    cli.add_command(eligible)
