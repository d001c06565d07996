from __future__ import annotations
import logging
import sys
import structlog # type: ignore

def setup_logging(log_level: str = "INFO") -> None:
    """Configure structured logging to stderr.

    Args:
        log_level: Standard logging level name
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def relative_error(estimate: float, actual: float) -> float:
    """Absolute relative error of an estimate; 0 when both are 0."""
    if actual == 0:
        return 0.0 if estimate == 0 else float('inf')
    return abs(estimate - actual) / actual
