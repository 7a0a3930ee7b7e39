"""structlog configuration for memdbctl.

Everything logs to stderr so stdout carries only command results.  Stdlib
records (``memdbctl.*``, SQLAlchemy's engine logger) are rendered by the
same structlog formatter as native structlog loggers, so ``--log-json``
yields one JSON object per line whichever API emitted the record.

SQL statement logging (``[database] echo``) is routed here too instead
of through ``create_engine(echo=True)``, which would attach its own
handler writing to stdout.
"""

from __future__ import annotations

import logging
import sys

import structlog

SQL_LOGGER = "sqlalchemy.engine"


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        # Carries ``db=<name>`` bound by DatabaseRegistry.transaction.
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    sql_echo: bool = False,
) -> None:
    """Install the stderr handler and set logger levels.

    Args:
        verbose: ``memdbctl`` loggers from DEBUG up; otherwise WARNING+.
        log_json: JSON lines instead of the console format.
        sql_echo: Log every SQL statement at INFO on ``sqlalchemy.engine``.
            Independent of *verbose*.
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("memdbctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger(SQL_LOGGER).setLevel(logging.INFO if sql_echo else logging.WARNING)
