"""
Logging setup for the evaluator command line.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are installed here, once, by the CLI.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


# Custom theme for log levels
_LOG_THEME = Theme({
    "logging.level.debug": "dim cyan",
    "logging.level.info": "green",
    "logging.level.warning": "yellow",
    "logging.level.error": "bold red",
    "log.time": "dim",
    "log.path": "dim",
})

# Logs go to stderr so JSON on stdout stays parseable
_console = Console(theme=_LOG_THEME, stderr=True)

ROOT_LOGGER_NAME = "architecture_evaluator"

_logging_configured = False


def setup_logging(level: str = "WARNING", show_path: bool = False) -> None:
    """
    Attach a RichHandler to the package root logger.

    Calling again only changes the level.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        show_path: Whether to show the source path of each record
    """
    global _logging_configured

    level_value = getattr(logging, level.upper())
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level_value)

    if _logging_configured:
        for handler in root.handlers:
            handler.setLevel(level_value)
        return

    handler = RichHandler(
        console=_console,
        rich_tracebacks=True,
        show_path=show_path,
        markup=False,
    )
    handler.setLevel(level_value)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    _logging_configured = True
