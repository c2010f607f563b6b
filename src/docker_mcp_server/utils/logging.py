"""
Logging setup. Everything goes to stderr: stdout is reserved for protocol frames.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "docker_mcp_server"


def setup_logging(level: str = "INFO", rich_tracebacks: bool = True) -> logging.Logger:
    """
    Configure root logging with a rich handler bound to stderr.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        rich_tracebacks: Render exception tracebacks with rich.

    Returns:
        The package logger.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=rich_tracebacks, show_path=False)],
        force=True,
    )
    # docker-py / urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(max(log_level, logging.WARNING))
    logging.getLogger("docker").setLevel(max(log_level, logging.INFO))

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)
    logger.debug(f"Logging configured at {level} level")
    return logger
