"""
Daemon-level tools: connectivity, info, disk usage, pruning
"""

import json
import logging
from typing import Annotated, Any

import docker

from ..containerspec.resources import format_bytes
from ..runtime.cli import run_docker_command
from ..runtime.client import execute
from ..runtime.results import CommandResult
from .decorators import tool

logger = logging.getLogger(__name__)


@tool(description="Checks that the Docker daemon is reachable")
async def ping_docker() -> dict[str, Any]:
    def _ping(client: docker.DockerClient) -> CommandResult:
        client.ping()
        return CommandResult.ok("Docker daemon is reachable")

    return await execute("ping Docker daemon", _ping)


@tool(description="Gets Docker system information")
async def get_docker_info() -> dict[str, Any]:
    def _info(client: docker.DockerClient) -> CommandResult:
        return CommandResult.ok("Retrieved Docker system information", data=client.info())

    return await execute("get Docker info", _info)


@tool(description="Gets Docker version information")
async def get_docker_version() -> dict[str, Any]:
    def _version(client: docker.DockerClient) -> CommandResult:
        return CommandResult.ok("Retrieved Docker version information", data=client.version())

    return await execute("get Docker version", _version)


def summarize_disk_usage(df: dict[str, Any]) -> dict[str, Any]:
    """Per-kind totals from the `/system/df` response"""
    images = df.get("Images") or []
    containers = df.get("Containers") or []
    volumes = df.get("Volumes") or []
    build_cache = df.get("BuildCache") or []

    image_bytes = df.get("LayersSize") or sum(i.get("Size", 0) for i in images)
    container_bytes = sum(c.get("SizeRw") or 0 for c in containers)
    volume_bytes = sum(max((v.get("UsageData") or {}).get("Size", 0), 0) for v in volumes)
    cache_bytes = sum(b.get("Size", 0) for b in build_cache)

    return {
        "images": {"count": len(images), "size": format_bytes(image_bytes)},
        "containers": {"count": len(containers), "size": format_bytes(container_bytes)},
        "volumes": {"count": len(volumes), "size": format_bytes(volume_bytes)},
        "build_cache": {"count": len(build_cache), "size": format_bytes(cache_bytes)},
        "total": format_bytes(image_bytes + container_bytes + volume_bytes + cache_bytes),
    }


@tool(description="Gets Docker disk usage information")
async def get_disk_usage() -> dict[str, Any]:
    def _df(client: docker.DockerClient) -> CommandResult:
        return CommandResult.ok("Retrieved disk usage information", data=summarize_disk_usage(client.df()))

    return await execute("get disk usage", _df)


@tool(description="Removes stopped Docker containers")
async def prune_containers() -> dict[str, Any]:
    def _prune(client: docker.DockerClient) -> CommandResult:
        report = client.containers.prune()
        deleted = report.get("ContainersDeleted") or []
        reclaimed = report.get("SpaceReclaimed", 0)
        return CommandResult.ok(
            f"Removed {len(deleted)} containers, reclaimed {format_bytes(reclaimed)}",
            data={"deleted": deleted, "space_reclaimed": reclaimed},
        )

    return await execute("prune containers", _prune)


@tool(description="Removes all unused Docker objects (containers, images, networks and optionally volumes)")
async def prune_system(
    volumes: Annotated[bool, "Also remove unused volumes"] = False,
) -> dict[str, Any]:
    def _prune(client: docker.DockerClient) -> CommandResult:
        summary: dict[str, Any] = {}
        reclaimed = 0

        report = client.containers.prune()
        summary["containers"] = len(report.get("ContainersDeleted") or [])
        reclaimed += report.get("SpaceReclaimed", 0)

        report = client.images.prune(filters={"dangling": True})
        summary["images"] = len(report.get("ImagesDeleted") or [])
        reclaimed += report.get("SpaceReclaimed", 0)

        summary["networks"] = len(client.networks.prune().get("NetworksDeleted") or [])

        if volumes:
            report = client.volumes.prune()
            summary["volumes"] = len(report.get("VolumesDeleted") or [])
            reclaimed += report.get("SpaceReclaimed", 0)

        summary["space_reclaimed"] = reclaimed
        parts = ", ".join(f"{count} {kind}" for kind, count in summary.items() if kind != "space_reclaimed")
        return CommandResult.ok(f"System pruned: removed {parts}; reclaimed {format_bytes(reclaimed)}", data=summary)

    return await execute("prune system", _prune)


@tool(description="Gets a resource usage snapshot of all running containers (docker stats)")
async def get_docker_processes() -> dict[str, Any]:
    output = await run_docker_command(["stats", "--no-stream", "--format", "{{json .}}"])
    if not output.success:
        return CommandResult.failure("Failed to get Docker processes", output.output).to_dict()

    processes = []
    for line in output.stdout.splitlines():
        if not line.strip():
            continue
        try:
            processes.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug(f"Skipping unparseable docker stats line: {line[:120]}")
    return CommandResult.ok(f"Retrieved {len(processes)} running containers", data=processes).to_dict()
