"""
Network tools
"""

import ipaddress
import logging
from typing import Annotated, Any

import docker
from docker.types import IPAMConfig, IPAMPool

from ..runtime.client import execute
from ..runtime.results import CommandResult
from .decorators import tool

logger = logging.getLogger(__name__)

NetworkRef = Annotated[str, "Network ID or name"]
ContainerRef = Annotated[str, "Container ID or name"]


def _summarize_network(network: Any) -> dict[str, Any]:
    attrs = network.attrs
    ipam = (attrs.get("IPAM") or {}).get("Config") or []
    return {
        "id": network.short_id,
        "name": network.name,
        "driver": attrs.get("Driver"),
        "scope": attrs.get("Scope"),
        "internal": attrs.get("Internal", False),
        "attachable": attrs.get("Attachable", False),
        "subnets": [c.get("Subnet") for c in ipam if c.get("Subnet")],
        "labels": attrs.get("Labels") or {},
    }


def build_ipam(subnet: str | None, gateway: str | None) -> IPAMConfig | None:
    """
    IPAM settings for a custom subnet.

    Raises:
        ValueError: If the subnet is not a CIDR block, the gateway is not an
            address, or the gateway lies outside the subnet.
    """
    if not subnet:
        if gateway:
            raise ValueError("A gateway requires a subnet")
        return None
    network = ipaddress.ip_network(subnet, strict=False)
    if gateway and ipaddress.ip_address(gateway) not in network:
        raise ValueError(f"Gateway {gateway} is not inside subnet {subnet}")
    return IPAMConfig(pool_configs=[IPAMPool(subnet=str(network), gateway=gateway)])


@tool(description="Lists Docker networks")
async def list_networks(
    driver: Annotated[str | None, "Only networks using this driver"] = None,
) -> dict[str, Any]:
    filters = {"driver": driver} if driver else None

    def _list(client: docker.DockerClient) -> CommandResult:
        networks = client.networks.list(filters=filters)
        return CommandResult.ok(f"Found {len(networks)} networks", data=[_summarize_network(n) for n in networks])

    return await execute("list networks", _list)


@tool(description="Creates a Docker network")
async def create_network(
    name: Annotated[str, "Network name"],
    driver: Annotated[str | None, "Network driver (defaults to 'bridge')"] = None,
    internal: Annotated[bool, "Restrict external access to the network"] = False,
    attachable: Annotated[bool, "Allow standalone containers to attach"] = False,
    subnet: Annotated[str | None, "Subnet in CIDR form (e.g. '172.28.0.0/16')"] = None,
    gateway: Annotated[str | None, "Gateway address inside the subnet"] = None,
    options: Annotated[dict[str, str] | None, "Driver options"] = None,
    labels: Annotated[dict[str, str] | None, "Labels to add to the network"] = None,
) -> dict[str, Any]:
    try:
        ipam = build_ipam(subnet, gateway)
    except ValueError as e:
        return CommandResult.failure(f"Failed to create network {name}", str(e)).to_dict()

    def _create(client: docker.DockerClient) -> CommandResult:
        network = client.networks.create(
            name,
            driver=driver or "bridge",
            internal=internal,
            attachable=attachable,
            ipam=ipam,
            options=options or None,
            labels=labels or None,
        )
        logger.info(f"Created network {name} ({network.short_id})")
        return CommandResult.ok(f"Network {name} created with ID: {network.id}", data={"id": network.id})

    return await execute(f"create network {name}", _create)


@tool(description="Removes a Docker network")
async def remove_network(network_id: NetworkRef) -> dict[str, Any]:
    def _remove(client: docker.DockerClient) -> CommandResult:
        client.networks.get(network_id).remove()
        return CommandResult.ok(f"Network {network_id} removed successfully")

    return await execute(f"remove network {network_id}", _remove)


@tool(description="Connects a container to a network")
async def connect_network(
    network_id: NetworkRef,
    container_id: ContainerRef,
    aliases: Annotated[list[str] | None, "Network-scoped aliases for the container"] = None,
    ipv4_address: Annotated[str | None, "Static IPv4 address"] = None,
    ipv6_address: Annotated[str | None, "Static IPv6 address"] = None,
) -> dict[str, Any]:
    def _connect(client: docker.DockerClient) -> CommandResult:
        client.networks.get(network_id).connect(
            container_id, aliases=aliases or None, ipv4_address=ipv4_address, ipv6_address=ipv6_address
        )
        return CommandResult.ok(f"Container {container_id} connected to network {network_id}", container_id=container_id)

    return await execute(f"connect container {container_id} to network {network_id}", _connect)


@tool(description="Disconnects a container from a network")
async def disconnect_network(
    network_id: NetworkRef,
    container_id: ContainerRef,
    force: Annotated[bool, "Force disconnection"] = False,
) -> dict[str, Any]:
    def _disconnect(client: docker.DockerClient) -> CommandResult:
        client.networks.get(network_id).disconnect(container_id, force=force)
        return CommandResult.ok(
            f"Container {container_id} disconnected from network {network_id}", container_id=container_id
        )

    return await execute(f"disconnect container {container_id} from network {network_id}", _disconnect)


@tool(description="Inspects a Docker network and returns detailed information")
async def inspect_network(network_id: NetworkRef) -> dict[str, Any]:
    def _inspect(client: docker.DockerClient) -> CommandResult:
        return CommandResult.ok(f"Network {network_id} inspected", data=client.networks.get(network_id).attrs)

    return await execute(f"inspect network {network_id}", _inspect)


@tool(description="Removes unused Docker networks")
async def prune_networks() -> dict[str, Any]:
    def _prune(client: docker.DockerClient) -> CommandResult:
        deleted = client.networks.prune().get("NetworksDeleted") or []
        return CommandResult.ok(f"Removed {len(deleted)} networks", data={"deleted": deleted})

    return await execute("prune networks", _prune)
