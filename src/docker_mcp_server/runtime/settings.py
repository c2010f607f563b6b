"""
Process-wide runtime settings, set once at start-up by the server entry point
"""

import dataclasses
import logging
from dataclasses import dataclass

from ..containerspec.policy import DEFAULT_POLICY, SecurityPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerSettings:
    """Settings consulted by the tool modules"""

    server_name: str = "docker-mcp-server"
    command_timeout: float = 300.0
    docker_timeout: int = 60
    policy: SecurityPolicy = DEFAULT_POLICY


_settings = ServerSettings()


def get_settings() -> ServerSettings:
    return _settings


def configure(**changes) -> ServerSettings:
    """Replace the active settings; unknown names raise TypeError"""
    global _settings
    _settings = dataclasses.replace(_settings, **changes)
    logger.debug(f"Runtime settings updated: {sorted(changes)}")
    return _settings


def reset() -> ServerSettings:
    global _settings
    _settings = ServerSettings()
    return _settings
