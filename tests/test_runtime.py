"""
Tests for the Docker runtime adapter: results, CLI runner and SDK client
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import docker.errors
import pytest

from docker_mcp_server.containerspec import RawContainerRequest, compile_container_request
from docker_mcp_server.containerspec.errors import ErrorKind, ValidationError
from docker_mcp_server.runtime import settings
from docker_mcp_server.runtime.cli import CommandOutput, run_docker_command
from docker_mcp_server.runtime.client import container_create_kwargs, execute, summarize_container
from docker_mcp_server.runtime.results import CommandResult


def _spec(**fields):
    return compile_container_request(RawContainerRequest(**fields)).unwrap()


def test_command_result_to_dict_omits_empty_fields():
    result = CommandResult.ok("Container started", container_id="abc123")

    assert result.to_dict() == {"success": True, "message": "Container started", "container_id": "abc123"}


def test_command_result_from_validation_errors():
    errors = [
        ValidationError("ports[0]", "bad port", ErrorKind.MALFORMED_FORMAT),
        ValidationError("user", "no root", ErrorKind.PROHIBITED_ROOT_USER),
    ]

    data = CommandResult.from_validation_errors(errors).to_dict()

    assert data["success"] is False
    assert data["message"] == "Invalid container configuration: 2 validation error(s)"
    assert data["error_message"] == "ports[0]: bad port (MalformedFormat); user: no root (ProhibitedRootUser)"
    assert data["validation_errors"][1] == {"field": "user", "kind": "ProhibitedRootUser", "reason": "no root"}


def test_command_output_combines_streams():
    assert CommandOutput(True, 0, stdout="out").output == "out"
    assert CommandOutput(False, 1, stderr="err").output == "err"
    assert CommandOutput(False, 1, stdout="out", stderr="err").output == "out\nerr"


def test_container_create_kwargs_minimal():
    """Test only populated options are passed to the SDK"""
    kwargs = container_create_kwargs(_spec(image="nginx"))

    assert kwargs == {
        "image": "nginx",
        "user": "1000:1000",
        "read_only": False,
        "privileged": False,
        "auto_remove": False,
        "stdin_open": False,
        "tty": False,
    }


def test_container_create_kwargs_full():
    spec = _spec(
        image="nginx",
        name="web",
        ports=["8080:80", "8081:80", "5353:53/udp"],
        volumes=["/srv:/usr/share/nginx/html:ro"],
        ulimits=["nofile=100:200"],
        tmpfs=["/cache:size=10m"],
        extra_hosts=["db:10.0.0.2"],
        memory_limit="256m",
        cpu_limit=0.5,
        restart_policy="always",
        labels={"app": "web"},
    )

    kwargs = container_create_kwargs(spec)

    assert kwargs["ports"] == {"80/tcp": [8080, 8081], "53/udp": 5353}
    assert kwargs["volumes"] == ["/srv:/usr/share/nginx/html:ro"]
    assert kwargs["ulimits"][0]["Name"] == "nofile"
    assert kwargs["ulimits"][0]["Soft"] == 100
    assert kwargs["tmpfs"] == {"/cache": "size=10m"}
    assert kwargs["extra_hosts"] == ["db:10.0.0.2"]
    assert kwargs["mem_limit"] == 256 * 1024 * 1024
    assert kwargs["nano_cpus"] == 500_000_000
    assert kwargs["restart_policy"] == {"Name": "always"}
    assert kwargs["labels"] == {"app": "web"}


def test_container_create_kwargs_keeps_mounts_sharing_a_source():
    """Test two mounts of one volume and two addresses for one host all reach the SDK"""
    spec = _spec(
        image="nginx",
        volumes=["data:/a", "data:/b:ro"],
        extra_hosts=["db:10.0.0.2", "db:::1"],
    )

    kwargs = container_create_kwargs(spec)

    assert kwargs["volumes"] == ["data:/a:rw", "data:/b:ro"]
    assert kwargs["extra_hosts"] == ["db:10.0.0.2", "db:::1"]


def test_summarize_container():
    attrs = {
        "Id": "0123456789abcdef",
        "Names": ["/web"],
        "Image": "nginx",
        "State": "running",
        "Status": "Up 2 minutes",
        "Ports": [{"PrivatePort": 80, "PublicPort": 8080, "Type": "tcp"}, {"PrivatePort": 443, "Type": "tcp"}],
        "Mounts": [{"Source": "/srv", "Destination": "/data"}],
    }

    summary = summarize_container(attrs)

    assert summary["id"] == "0123456789ab"
    assert summary["name"] == "web"
    assert summary["ports"] == ["8080:80/tcp", "443/tcp"]
    assert summary["mounts"] == ["/srv:/data"]
    assert summary["labels"] == {}


@pytest.mark.asyncio
async def test_execute_success_closes_client():
    client = MagicMock()
    with patch("docker_mcp_server.runtime.client.docker.from_env", return_value=client):
        result = await execute("ping", lambda c: CommandResult.ok("pong", data=c.ping()))

    assert result["success"] is True
    assert result["message"] == "pong"
    client.close.assert_called_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, prefix",
    [
        (docker.errors.ImageNotFound("missing", explanation="No such image: foo"), "Image not found: No such image"),
        (docker.errors.NotFound("missing", explanation="No such container: web"), "Not found: No such container"),
        (docker.errors.APIError("conflict", explanation="name in use"), "Docker API error: name in use"),
        (RuntimeError("boom"), "boom"),
    ],
)
async def test_execute_maps_errors(error, prefix):
    """Test SDK exceptions become failed results instead of propagating"""
    client = MagicMock()

    def operation(c):
        raise error

    with patch("docker_mcp_server.runtime.client.docker.from_env", return_value=client):
        result = await execute("start container web", operation)

    assert result["success"] is False
    assert result["message"] == "Failed to start container web"
    assert result["error_message"].startswith(prefix)
    client.close.assert_called_once()


@pytest.mark.asyncio
async def test_execute_daemon_unavailable():
    with patch(
        "docker_mcp_server.runtime.client.docker.from_env",
        side_effect=docker.errors.DockerException("Error while fetching server API version"),
    ):
        result = await execute("list containers", lambda c: CommandResult.ok("never"))

    assert result["success"] is False
    assert result["error_message"].startswith("Docker daemon unavailable")


def _process(stdout=b"", stderr=b"", returncode=0):
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock()
    proc.returncode = returncode
    return proc


@pytest.mark.asyncio
async def test_run_docker_command_success():
    proc = _process(stdout=b"abc\n")
    with patch(
        "docker_mcp_server.runtime.cli.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)
    ) as mock_exec:
        output = await run_docker_command(["compose", "ps"], working_dir="/tmp")

    assert output.success is True
    assert output.exit_code == 0
    assert output.stdout == "abc"
    args, kwargs = mock_exec.call_args
    assert args == ("docker", "compose", "ps")
    assert kwargs["cwd"] == "/tmp"
    assert kwargs["env"] is None


@pytest.mark.asyncio
async def test_run_docker_command_environment_is_layered():
    proc = _process()
    with patch(
        "docker_mcp_server.runtime.cli.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)
    ) as mock_exec:
        await run_docker_command(["version"], environment={"TAG": "1.0"})

    env = mock_exec.call_args.kwargs["env"]
    assert env["TAG"] == "1.0"
    assert "PATH" in env


@pytest.mark.asyncio
async def test_run_docker_command_failure():
    proc = _process(stderr=b"no such service\n", returncode=1)
    with patch("docker_mcp_server.runtime.cli.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        output = await run_docker_command(["compose", "logs", "nope"])

    assert output.success is False
    assert output.exit_code == 1
    assert output.stderr == "no such service"


@pytest.mark.asyncio
async def test_run_docker_command_missing_executable():
    with patch(
        "docker_mcp_server.runtime.cli.asyncio.create_subprocess_exec",
        AsyncMock(side_effect=FileNotFoundError("docker")),
    ):
        output = await run_docker_command(["ps"])

    assert output.success is False
    assert output.exit_code is None
    assert "not found" in output.stderr


@pytest.mark.asyncio
async def test_run_docker_command_timeout_kills_process():
    proc = _process(returncode=None)
    proc.communicate = AsyncMock(side_effect=asyncio.TimeoutError())
    with patch("docker_mcp_server.runtime.cli.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        output = await run_docker_command(["compose", "up"], timeout=5)

    assert output.success is False
    assert output.stderr == "Command timed out after 5 seconds"
    proc.kill.assert_called_once()


def test_configure_and_reset():
    updated = settings.configure(command_timeout=10.0)

    assert updated.command_timeout == 10.0
    assert settings.get_settings().command_timeout == 10.0
    with pytest.raises(TypeError):
        settings.configure(unknown_option=True)
    assert settings.reset().command_timeout == 300.0
