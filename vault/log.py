import logging
import sys

import structlog


def _stderr_logger(*args):
    # Looked up per call so a redirected sys.stderr is honored
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(verbose: bool = False):
    """
    Configure structlog for the CLI.

    Diagnostics go to stderr so stdout stays clean for command output
    (get-password is usually piped). Never pass secret values to a logger.
    """
    level = logging.INFO if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
