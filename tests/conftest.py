"""
Shared fixtures: a mocked Docker SDK client and clean runtime settings
"""

from unittest.mock import MagicMock, patch

import pytest

from docker_mcp_server.runtime import settings


@pytest.fixture(autouse=True)
def clean_settings():
    settings.reset()
    yield
    settings.reset()


@pytest.fixture
def docker_client():
    """Patch docker.from_env so every tool call receives this MagicMock client"""
    client = MagicMock()
    with patch("docker_mcp_server.runtime.client.docker.from_env", return_value=client):
        yield client
