"""AppContext: shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``.  Owns the process's DatabaseRegistry (opened lazily,
closed when the root context closes) and centralizes result emission
(stdout/stderr routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from memdbctl.output.formatters import format_result

if TYPE_CHECKING:
    from memdbctl.config.settings import MemdbSettings
    from memdbctl.infrastructure.database.registry import DatabaseRegistry
    from memdbctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The registry is created on first use so ``--help`` and ``--version``
    never touch the data directory.
    """

    def __init__(self, settings: MemdbSettings) -> None:
        self.settings = settings
        self._registry: DatabaseRegistry | None = None

        from memdbctl.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            sql_echo=settings.database.echo,
        )

        if settings.verbose:
            from memdbctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def registry(self) -> DatabaseRegistry:
        """The registry instance (created lazily on first access)."""
        if self._registry is None:
            from memdbctl.infrastructure.database.registry import DatabaseRegistry

            self._registry = DatabaseRegistry(self.settings)
        return self._registry

    def close(self) -> None:
        """Dispose every engine the command opened; failures go to stderr."""
        if self._registry is None:
            return
        _closed, failures = self._registry.close_all()
        for failure in failures:
            click.echo(f"WARNING: failed to close {failure}", err=True)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout.  Warnings go to stderr in human mode so
          they don't pollute piped output.
        * Failure: writes to stderr and exits with code 1.
        """
        output = format_result(
            result,
            json_output=self.settings.json_output,
            verbose=self.settings.verbose,
        )
        if result.ok:
            click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
