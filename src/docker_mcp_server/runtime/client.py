"""
Docker SDK adapter.

Owns client acquisition, translation of a NormalizedContainerSpec into
`containers.create` keyword arguments, and mapping of docker-py exceptions
onto CommandResult failures.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import docker
import docker.errors
from docker.types import Ulimit

from ..containerspec.models import NormalizedContainerSpec
from .results import CommandResult
from .settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def docker_client() -> AsyncIterator[docker.DockerClient]:
    """Yield a client connected through the environment (DOCKER_HOST etc.) and close it afterwards"""
    client = await asyncio.to_thread(docker.from_env, timeout=get_settings().docker_timeout)
    try:
        yield client
    finally:
        try:
            await asyncio.to_thread(client.close)
        except Exception as e:
            logger.warning(f"Error closing Docker client: {e}")


async def execute(action: str, operation: Callable[[docker.DockerClient], CommandResult]) -> dict[str, Any]:
    """
    Run a blocking SDK operation in a worker thread and report its outcome.

    Args:
        action: Human-readable description used in failure messages,
            e.g. "start container web".
        operation: Callable receiving a connected client and returning a
            CommandResult.

    Returns:
        The CommandResult as a dict. Docker errors become failed results
        rather than exceptions.
    """
    try:
        async with docker_client() as client:
            result = await asyncio.to_thread(operation, client)
    except docker.errors.ImageNotFound as e:
        logger.warning(f"Image not found while trying to {action}: {e}")
        result = CommandResult.failure(f"Failed to {action}", f"Image not found: {_explain(e)}")
    except docker.errors.NotFound as e:
        logger.warning(f"Not found while trying to {action}: {e}")
        result = CommandResult.failure(f"Failed to {action}", f"Not found: {_explain(e)}")
    except docker.errors.APIError as e:
        logger.error(f"Docker API error while trying to {action}: {e}")
        result = CommandResult.failure(f"Failed to {action}", f"Docker API error: {_explain(e)}")
    except docker.errors.DockerException as e:
        logger.error(f"Failed to connect to Docker daemon: {e}")
        result = CommandResult.failure(f"Failed to {action}", f"Docker daemon unavailable: {e}")
    except Exception as e:
        logger.error(f"Unexpected error while trying to {action}: {e}", exc_info=True)
        result = CommandResult.failure(f"Failed to {action}", str(e))
    return result.to_dict()


def _explain(error: docker.errors.DockerException) -> str:
    explanation = getattr(error, "explanation", None)
    return str(explanation) if explanation else str(error)


def container_create_kwargs(spec: NormalizedContainerSpec) -> dict[str, Any]:
    """Keyword arguments for `client.containers.create` built from a validated spec"""
    ports: dict[str, Any] = {}
    for port in spec.ports:
        key = f"{port.container_port}/{port.protocol}"
        if key not in ports:
            ports[key] = port.host_port
        elif isinstance(ports[key], list):
            ports[key].append(port.host_port)
        else:
            ports[key] = [ports[key], port.host_port]

    kwargs: dict[str, Any] = {
        "image": spec.image,
        "name": spec.name,
        "command": list(spec.command) or None,
        "environment": list(spec.env) or None,
        "ports": ports or None,
        "volumes": [v.encode() for v in spec.volumes] or None,
        "devices": [d.encode() for d in spec.devices] or None,
        "ulimits": [Ulimit(name=u.name, soft=u.soft, hard=u.hard) for u in spec.ulimits] or None,
        "tmpfs": {t.container_path: t.options for t in spec.tmpfs} or None,
        "extra_hosts": [h.encode() for h in spec.extra_hosts] or None,
        "dns": list(spec.dns) or None,
        "mem_limit": spec.resources.memory_bytes,
        "nano_cpus": spec.resources.nano_cpus,
        "cap_add": list(spec.security.cap_add) or None,
        "cap_drop": list(spec.security.cap_drop) or None,
        "security_opt": list(spec.security.security_opts) or None,
        "user": spec.security.user,
        "read_only": spec.security.read_only_rootfs,
        "privileged": spec.security.privileged,
        "network_mode": spec.network_mode,
        "labels": dict(spec.labels) or None,
        "working_dir": spec.working_dir,
        "hostname": spec.hostname,
        "domainname": spec.domainname,
        "auto_remove": spec.auto_remove,
        "stdin_open": spec.interactive,
        "tty": spec.tty,
    }
    if spec.restart_policy != "no":
        kwargs["restart_policy"] = {"Name": spec.restart_policy}
    return {key: value for key, value in kwargs.items() if value is not None}


def summarize_container(attrs: dict[str, Any]) -> dict[str, Any]:
    """Compact entry built from a raw container list record (`client.api.containers()`)"""
    names = attrs.get("Names") or []
    return {
        "id": attrs.get("Id", "")[:12],
        "name": names[0].lstrip("/") if names else "",
        "image": attrs.get("Image", ""),
        "state": attrs.get("State"),
        "status": attrs.get("Status"),
        "created": attrs.get("Created"),
        "ports": [_format_port(p) for p in attrs.get("Ports") or []],
        "mounts": [f"{m.get('Source', '')}:{m.get('Destination', '')}" for m in attrs.get("Mounts") or []],
        "labels": attrs.get("Labels") or {},
        "size_rw": attrs.get("SizeRw"),
        "size_root_fs": attrs.get("SizeRootFs"),
    }


def _format_port(port: dict[str, Any]) -> str:
    private = f"{port.get('PrivatePort')}/{port.get('Type', 'tcp')}"
    return f"{port['PublicPort']}:{private}" if port.get("PublicPort") else private
