"""AppContext: shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. Sets up logging and centralizes result emission
(stdout/stderr routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cartcalc.config.logging import configure_logging
from cartcalc.output.formatters import OutputSettings, format_result
from cartcalc.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from cartcalc.config.models import CartcalcConfig
    from cartcalc.config.settings import CartcalcSettings
    from cartcalc.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: CartcalcSettings) -> None:
        self.settings = settings
        configure_logging(settings)
        if settings.verbose:
            enable_telemetry()

    @property
    def config(self) -> CartcalcConfig:
        return self.settings.to_config()

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout. Warnings go to stderr, except in JSON
          mode where they are part of the payload.
        * Failure: writes to stderr and exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
