"""
Container lifecycle tools.

`create_container` and `validate_container_config` run the request through
the container spec compiler; nothing reaches the daemon unless it compiles.
"""

import logging
from datetime import datetime
from typing import Annotated, Any

import docker
import docker.errors

from ..containerspec import compile_container_arguments
from ..containerspec.resources import format_bytes
from ..runtime.client import container_create_kwargs, execute, summarize_container
from ..runtime.results import CommandResult
from ..runtime.settings import get_settings
from .decorators import tool

logger = logging.getLogger(__name__)

ContainerRef = Annotated[str, "Container ID or name"]
StringList = list[str] | None


def _compile(arguments: dict[str, Any]):
    supplied = {key: value for key, value in arguments.items() if value is not None}
    return compile_container_arguments(supplied, get_settings().policy)


@tool(description="Creates and optionally starts a new Docker container with comprehensive configuration options")
async def create_container(
    image: Annotated[str, "Docker image name (e.g., 'nginx:latest', 'ubuntu:22.04')"],
    name: Annotated[str | None, "Container name"] = None,
    command: Annotated[str | None, "Command to run in the container"] = None,
    args: Annotated[StringList, "Arguments for the command"] = None,
    environment: Annotated[StringList, "Environment variables as 'KEY=value' strings"] = None,
    ports: Annotated[StringList, "Port mappings as 'host:container[/tcp|udp]', e.g. ['8080:80']"] = None,
    volumes: Annotated[StringList, "Volume mounts as 'host:container[:ro|rw]'"] = None,
    working_dir: Annotated[str | None, "Working directory inside the container"] = None,
    user: Annotated[str | None, "User to run as ('uid[:gid]' or 'name[:group]'); root is rejected"] = None,
    hostname: Annotated[str | None, "Hostname for the container"] = None,
    domainname: Annotated[str | None, "Domain name for the container"] = None,
    detach: Annotated[bool, "Run container in detached mode"] = True,
    auto_remove: Annotated[bool, "Automatically remove container when it exits"] = False,
    interactive: Annotated[bool, "Keep STDIN open"] = False,
    tty: Annotated[bool, "Allocate a pseudo-TTY"] = False,
    read_only: Annotated[bool, "Mount the container's root filesystem as read only"] = False,
    privileged: Annotated[bool, "Give extended privileges to this container"] = False,
    network: Annotated[str | None, "Network mode (e.g., 'bridge', 'host', 'none', 'container:name')"] = None,
    restart_policy: Annotated[str | None, "Restart policy: no, always, unless-stopped, on-failure"] = None,
    cpu_limit: Annotated[float | None, "CPU limit (number of CPUs)"] = None,
    memory_limit: Annotated[str | None, "Memory limit (e.g., '512m', '1g')"] = None,
    cap_add: Annotated[StringList, "Capabilities to add"] = None,
    cap_drop: Annotated[StringList, "Capabilities to drop"] = None,
    devices: Annotated[StringList, "Device mappings as 'host:container[:rwm]'"] = None,
    dns: Annotated[StringList, "DNS servers"] = None,
    extra_hosts: Annotated[StringList, "Extra /etc/hosts entries as 'hostname:ip'"] = None,
    labels: Annotated[dict[str, str] | None, "Labels to add to the container"] = None,
    security_opt: Annotated[StringList, "Security options (e.g., 'no-new-privileges')"] = None,
    tmpfs: Annotated[StringList, "Tmpfs mounts as 'path[:options]'"] = None,
    ulimits: Annotated[StringList, "Ulimits as 'name=soft:hard'"] = None,
    sanitize_env: Annotated[bool, "Reject invalid environment keys and upper-case valid ones"] = False,
    harden: Annotated[bool, "Apply hardened defaults (drop ALL caps, no-new-privileges, read-only rootfs)"] = False,
    start: Annotated[bool, "Start the container after creation"] = True,
) -> dict[str, Any]:
    arguments = dict(locals())
    arguments.pop("start")
    compiled = _compile(arguments)
    if not compiled.ok:
        logger.warning(f"Rejected container request for image '{image}': {len(compiled.errors)} error(s)")
        return CommandResult.from_validation_errors(list(compiled.errors)).to_dict()

    spec = compiled.spec
    create_kwargs = container_create_kwargs(spec)

    def _create(client: docker.DockerClient) -> CommandResult:
        container = client.containers.create(**create_kwargs)
        message = f"Container created with ID: {container.id}"
        if start:
            try:
                container.start()
                message += " and started successfully"
            except docker.errors.APIError as e:
                logger.error(f"Container {container.short_id} created but failed to start: {e}")
                message += f" but failed to start: {e.explanation or e}"
        logger.info(message)
        return CommandResult.ok(message, container_id=container.id, data={"spec": spec.to_dict()})

    return await execute(f"create container from image {spec.image}", _create)


@tool(description="Validates a container configuration without creating anything and returns the normalized spec")
async def validate_container_config(
    image: Annotated[str, "Docker image name"],
    name: str | None = None,
    command: str | None = None,
    args: StringList = None,
    environment: StringList = None,
    ports: StringList = None,
    volumes: StringList = None,
    working_dir: str | None = None,
    user: str | None = None,
    network: str | None = None,
    restart_policy: str | None = None,
    cpu_limit: float | None = None,
    memory_limit: str | None = None,
    cap_add: StringList = None,
    cap_drop: StringList = None,
    devices: StringList = None,
    dns: StringList = None,
    extra_hosts: StringList = None,
    labels: dict[str, str] | None = None,
    security_opt: StringList = None,
    tmpfs: StringList = None,
    ulimits: StringList = None,
    read_only: bool = False,
    privileged: bool = False,
    sanitize_env: bool = False,
    harden: bool = False,
) -> dict[str, Any]:
    compiled = _compile(dict(locals()))
    if not compiled.ok:
        return CommandResult.from_validation_errors(list(compiled.errors)).to_dict()
    return CommandResult.ok("Container configuration is valid", data=compiled.spec.to_dict()).to_dict()


@tool(description="Lists Docker containers with filtering options")
async def list_containers(
    all: Annotated[bool, "Show all containers (default shows just running)"] = False,
    size: Annotated[bool, "Show container sizes"] = False,
    limit: Annotated[int | None, "Limit the number of results"] = None,
    since: Annotated[str | None, "Only show containers created since this container ID"] = None,
    before: Annotated[str | None, "Only show containers created before this container ID"] = None,
    labels: Annotated[dict[str, str] | None, "Filter containers by labels"] = None,
) -> dict[str, Any]:
    filters = {"label": [f"{k}={v}" for k, v in labels.items()]} if labels else None

    def _list(client: docker.DockerClient) -> CommandResult:
        records = client.api.containers(
            all=all, size=size, limit=limit if limit is not None else -1, since=since, before=before, filters=filters
        )
        infos = [summarize_container(r) for r in records]
        if not size:
            for info in infos:
                info.pop("size_rw")
                info.pop("size_root_fs")
        return CommandResult.ok(f"Found {len(infos)} containers", data=infos)

    return await execute("list containers", _list)


@tool(description="Starts a Docker container")
async def start_container(container_id: ContainerRef) -> dict[str, Any]:
    def _start(client: docker.DockerClient) -> CommandResult:
        client.containers.get(container_id).start()
        return CommandResult.ok(f"Container {container_id} started successfully", container_id=container_id)

    return await execute(f"start container {container_id}", _start)


@tool(description="Stops a Docker container")
async def stop_container(
    container_id: ContainerRef,
    timeout: Annotated[int, "Seconds to wait before killing the container"] = 10,
) -> dict[str, Any]:
    def _stop(client: docker.DockerClient) -> CommandResult:
        client.containers.get(container_id).stop(timeout=timeout)
        return CommandResult.ok(f"Container {container_id} stopped successfully", container_id=container_id)

    return await execute(f"stop container {container_id}", _stop)


@tool(description="Restarts a Docker container")
async def restart_container(
    container_id: ContainerRef,
    timeout: Annotated[int, "Seconds to wait before killing the container"] = 10,
) -> dict[str, Any]:
    def _restart(client: docker.DockerClient) -> CommandResult:
        client.containers.get(container_id).restart(timeout=timeout)
        return CommandResult.ok(f"Container {container_id} restarted successfully", container_id=container_id)

    return await execute(f"restart container {container_id}", _restart)


@tool(description="Removes a Docker container")
async def remove_container(
    container_id: ContainerRef,
    force: Annotated[bool, "Force removal of a running container"] = False,
    remove_volumes: Annotated[bool, "Remove anonymous volumes associated with the container"] = False,
) -> dict[str, Any]:
    def _remove(client: docker.DockerClient) -> CommandResult:
        client.containers.get(container_id).remove(force=force, v=remove_volumes)
        return CommandResult.ok(f"Container {container_id} removed successfully", container_id=container_id)

    return await execute(f"remove container {container_id}", _remove)


def _parse_timestamp(value: str | None) -> datetime | int | None:
    """Unix seconds or RFC 3339; docker-py accepts either an int or a datetime"""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@tool(description="Gets logs from a Docker container")
async def get_container_logs(
    container_id: ContainerRef,
    stdout: bool = True,
    stderr: bool = True,
    timestamps: Annotated[bool, "Prefix each line with its timestamp"] = False,
    tail: Annotated[int | None, "Number of lines to show from the end of the logs"] = None,
    since: Annotated[str | None, "Show logs since timestamp (RFC3339 or Unix seconds)"] = None,
    until: Annotated[str | None, "Show logs until timestamp (RFC3339 or Unix seconds)"] = None,
) -> dict[str, Any]:
    try:
        since_ts, until_ts = _parse_timestamp(since), _parse_timestamp(until)
    except ValueError as e:
        return CommandResult.failure(f"Failed to get logs for container {container_id}", f"Invalid timestamp: {e}").to_dict()

    def _logs(client: docker.DockerClient) -> CommandResult:
        output = client.containers.get(container_id).logs(
            stdout=stdout,
            stderr=stderr,
            timestamps=timestamps,
            tail=tail if tail is not None else "all",
            since=since_ts,
            until=until_ts,
        )
        text = output.decode("utf-8", errors="replace")
        return CommandResult.ok(f"Retrieved logs for container {container_id}", data=text, container_id=container_id)

    return await execute(f"get logs for container {container_id}", _logs)


@tool(description="Inspects a Docker container and returns detailed information")
async def inspect_container(container_id: ContainerRef) -> dict[str, Any]:
    def _inspect(client: docker.DockerClient) -> CommandResult:
        container = client.containers.get(container_id)
        return CommandResult.ok(f"Container {container_id} inspected", data=container.attrs, container_id=container.id)

    return await execute(f"inspect container {container_id}", _inspect)


def summarize_stats(stats: dict[str, Any]) -> dict[str, Any]:
    """CPU percentage, memory and I/O totals from one `container.stats(stream=False)` sample"""
    cpu = stats.get("cpu_stats") or {}
    precpu = stats.get("precpu_stats") or {}
    cpu_delta = (cpu.get("cpu_usage") or {}).get("total_usage", 0) - (precpu.get("cpu_usage") or {}).get("total_usage", 0)
    system_delta = cpu.get("system_cpu_usage", 0) - precpu.get("system_cpu_usage", 0)
    online_cpus = cpu.get("online_cpus") or len((cpu.get("cpu_usage") or {}).get("percpu_usage") or []) or 1
    cpu_percent = (cpu_delta / system_delta) * online_cpus * 100.0 if system_delta > 0 and cpu_delta > 0 else 0.0

    memory = stats.get("memory_stats") or {}
    cache = (memory.get("stats") or {}).get("inactive_file", 0)
    memory_usage = max(memory.get("usage", 0) - cache, 0)
    memory_limit = memory.get("limit", 0)

    rx = sum(n.get("rx_bytes", 0) for n in (stats.get("networks") or {}).values())
    tx = sum(n.get("tx_bytes", 0) for n in (stats.get("networks") or {}).values())
    blkio = (stats.get("blkio_stats") or {}).get("io_service_bytes_recursive") or []
    read = sum(e.get("value", 0) for e in blkio if e.get("op", "").lower() == "read")
    write = sum(e.get("value", 0) for e in blkio if e.get("op", "").lower() == "write")

    return {
        "cpu_percent": round(cpu_percent, 2),
        "memory_usage": format_bytes(memory_usage),
        "memory_limit": format_bytes(memory_limit),
        "memory_percent": round(memory_usage / memory_limit * 100.0, 2) if memory_limit else 0.0,
        "network_rx": format_bytes(rx),
        "network_tx": format_bytes(tx),
        "block_read": format_bytes(read),
        "block_write": format_bytes(write),
        "pids": (stats.get("pids_stats") or {}).get("current"),
    }


@tool(description="Gets a resource usage snapshot (CPU, memory, network, block I/O) for a Docker container")
async def get_container_stats(container_id: ContainerRef) -> dict[str, Any]:
    def _stats(client: docker.DockerClient) -> CommandResult:
        stats = client.containers.get(container_id).stats(stream=False)
        return CommandResult.ok(
            f"Retrieved stats for container {container_id}", data=summarize_stats(stats), container_id=container_id
        )

    return await execute(f"get stats for container {container_id}", _stats)


@tool(description="Executes a command in a running Docker container")
async def exec_container(
    container_id: ContainerRef,
    command: Annotated[str, "Command to execute"],
    args: Annotated[StringList, "Arguments for the command"] = None,
    interactive: Annotated[bool, "Keep STDIN open"] = False,
    user: Annotated[str | None, "User to run the command as"] = None,
    working_dir: Annotated[str | None, "Working directory for the command"] = None,
) -> dict[str, Any]:
    cmd = [command, *(args or [])]

    def _exec(client: docker.DockerClient) -> CommandResult:
        container = client.containers.get(container_id)
        exit_code, output = container.exec_run(cmd, stdin=interactive, user=user or "", workdir=working_dir)
        text = output.decode("utf-8", errors="replace") if output else ""
        data = {"exit_code": exit_code, "output": text}
        if exit_code != 0:
            return CommandResult(
                success=False,
                message=f"Command exited with code {exit_code} in container {container_id}",
                error_message=text.strip() or None,
                data=data,
                container_id=container_id,
            )
        return CommandResult.ok(f"Executed command in container {container_id}", data=data, container_id=container_id)

    return await execute(f"execute command in container {container_id}", _exec)
