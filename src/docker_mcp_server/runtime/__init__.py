"""
Runtime adapters: Docker SDK client, docker CLI runner, result envelope
"""

from .cli import CommandOutput, run_docker_command
from .client import container_create_kwargs, docker_client, execute
from .results import CommandResult
from .settings import ServerSettings, configure, get_settings

__all__ = [
    "CommandOutput",
    "CommandResult",
    "ServerSettings",
    "configure",
    "container_create_kwargs",
    "docker_client",
    "execute",
    "get_settings",
    "run_docker_command",
]
