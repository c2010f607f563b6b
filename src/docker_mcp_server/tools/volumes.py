"""
Volume tools
"""

from typing import Annotated, Any

import docker

from ..containerspec.resources import format_bytes
from ..runtime.client import execute
from ..runtime.results import CommandResult
from .decorators import tool

VolumeName = Annotated[str, "Volume name"]


def _summarize_volume(volume: Any) -> dict[str, Any]:
    attrs = volume.attrs
    return {
        "name": volume.name,
        "driver": attrs.get("Driver"),
        "mountpoint": attrs.get("Mountpoint"),
        "created": attrs.get("CreatedAt"),
        "labels": attrs.get("Labels") or {},
        "scope": attrs.get("Scope"),
    }


@tool(description="Lists Docker volumes")
async def list_volumes(
    dangling: Annotated[bool, "Only volumes not referenced by any container"] = False,
) -> dict[str, Any]:
    filters = {"dangling": True} if dangling else None

    def _list(client: docker.DockerClient) -> CommandResult:
        volumes = client.volumes.list(filters=filters)
        return CommandResult.ok(f"Found {len(volumes)} volumes", data=[_summarize_volume(v) for v in volumes])

    return await execute("list volumes", _list)


@tool(description="Creates a Docker volume")
async def create_volume(
    name: VolumeName,
    driver: Annotated[str | None, "Volume driver (defaults to 'local')"] = None,
    driver_opts: Annotated[dict[str, str] | None, "Driver options"] = None,
    labels: Annotated[dict[str, str] | None, "Labels to add to the volume"] = None,
) -> dict[str, Any]:
    def _create(client: docker.DockerClient) -> CommandResult:
        volume = client.volumes.create(
            name=name,
            driver=driver or "local",
            driver_opts={str(k): str(v) for k, v in (driver_opts or {}).items()},
            labels={str(k): str(v) for k, v in (labels or {}).items()},
        )
        return CommandResult.ok(f"Volume {volume.name} created successfully", data=_summarize_volume(volume))

    return await execute(f"create volume {name}", _create)


@tool(description="Removes a Docker volume")
async def remove_volume(
    name: VolumeName,
    force: Annotated[bool, "Force removal of the volume"] = False,
) -> dict[str, Any]:
    def _remove(client: docker.DockerClient) -> CommandResult:
        client.volumes.get(name).remove(force=force)
        return CommandResult.ok(f"Volume {name} removed successfully")

    return await execute(f"remove volume {name}", _remove)


@tool(description="Inspects a Docker volume and returns detailed information")
async def inspect_volume(name: VolumeName) -> dict[str, Any]:
    def _inspect(client: docker.DockerClient) -> CommandResult:
        return CommandResult.ok(f"Volume {name} inspected", data=client.volumes.get(name).attrs)

    return await execute(f"inspect volume {name}", _inspect)


@tool(description="Removes unused Docker volumes")
async def prune_volumes() -> dict[str, Any]:
    def _prune(client: docker.DockerClient) -> CommandResult:
        report = client.volumes.prune()
        deleted = report.get("VolumesDeleted") or []
        reclaimed = report.get("SpaceReclaimed", 0)
        return CommandResult.ok(
            f"Removed {len(deleted)} volumes, reclaimed {format_bytes(reclaimed)}",
            data={"deleted": deleted, "space_reclaimed": reclaimed},
        )

    return await execute("prune volumes", _prune)
