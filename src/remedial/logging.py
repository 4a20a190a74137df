"""Structured logging for the remedial engine using structlog.

Console output while planning locally, JSON when the engine runs behind the
portal. Modules log through get_logger() and emit snake_case event names
(``weekly_batch_rejected``, ``import_row_skipped``) with key/value context.
The coordinator being planned for is bound once per planner through
contextvars so every event carries it.
"""

import logging
import sys

import structlog


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog processors and the output renderer.

    Args:
        json_output: If True, render JSON lines. If False, console format.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # urllib3/requests log through stdlib; send them to the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )
    logging.getLogger().handlers = []
    logging.getLogger().addHandler(logging.StreamHandler(sys.stdout))

    # Connection-pool chatter only when debugging the portal client
    if numeric_level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def bind_coordinator(coordinator_id: str | None, grade_level: str | None) -> None:
    """Attach the coordinator identity to every subsequent log event."""
    structlog.contextvars.bind_contextvars(
        coordinator_id=coordinator_id,
        grade_level=grade_level,
    )


def clear_coordinator() -> None:
    """Drop coordinator context bound by bind_coordinator()."""
    structlog.contextvars.unbind_contextvars("coordinator_id", "grade_level")


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance bound with the module name.

    Args:
        name: Logger name (typically __name__ from calling module).

    Returns:
        Configured structlog logger with module name context.
    """
    return structlog.get_logger(name)
