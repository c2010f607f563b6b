"""
Data model for container creation requests.

RawContainerRequest is the weakly-typed input assembled from tool arguments.
Everything else here is the immutable, validated output of the compiler.
"""

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field, field_validator

LIST_FIELDS = (
    "args",
    "environment",
    "ports",
    "volumes",
    "devices",
    "dns",
    "extra_hosts",
    "tmpfs",
    "ulimits",
    "security_opt",
    "cap_add",
    "cap_drop",
)


class RawContainerRequest(BaseModel):
    """User-supplied container configuration, exactly as received"""

    image: str = Field(description="Docker image name (e.g., 'nginx:latest', 'ubuntu:22.04')")
    name: str | None = Field(default=None, description="Container name")
    command: str | None = Field(default=None, description="Command to run in the container")
    args: list[str] = Field(default_factory=list, description="Arguments for the command")
    environment: list[str] = Field(default_factory=list, description="Environment variables as 'KEY=value'")
    ports: list[str] = Field(default_factory=list, description="Port mappings as 'host:container[/proto]'")
    volumes: list[str] = Field(default_factory=list, description="Volume mounts as 'host:container[:ro|rw]'")
    devices: list[str] = Field(default_factory=list, description="Device mappings as 'host:container[:perms]'")
    dns: list[str] = Field(default_factory=list, description="DNS servers")
    extra_hosts: list[str] = Field(default_factory=list, description="Extra /etc/hosts entries as 'hostname:ip'")
    tmpfs: list[str] = Field(default_factory=list, description="Tmpfs mounts as 'path[:options]'")
    ulimits: list[str] = Field(default_factory=list, description="Ulimits as 'name=soft:hard'")
    security_opt: list[str] = Field(default_factory=list, description="Security options")
    cap_add: list[str] = Field(default_factory=list, description="Capabilities to add")
    cap_drop: list[str] = Field(default_factory=list, description="Capabilities to drop")
    memory_limit: str | None = Field(default=None, description="Memory limit (e.g., '512m', '1g')")
    cpu_limit: float | None = Field(default=None, description="CPU limit (number of CPUs)")
    labels: dict[str, str] = Field(default_factory=dict, description="Container labels")
    network: str | None = Field(default=None, description="Network mode (e.g., 'bridge', 'host', 'none')")
    restart_policy: str | None = Field(default=None, description="Restart policy name")
    user: str | None = Field(default=None, description="User to run as ('user[:group]' or 'uid[:gid]')")
    working_dir: str | None = Field(default=None, description="Working directory inside the container")
    hostname: str | None = None
    domainname: str | None = None
    detach: bool = True
    auto_remove: bool = False
    interactive: bool = False
    tty: bool = False
    read_only: bool = False
    privileged: bool = False
    sanitize_env: bool = Field(default=False, description="Validate and upper-case environment keys")
    harden: bool = Field(default=False, description="Apply hardened security defaults")

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def _coerce_string_list(cls, value: Any) -> Any:
        # MCP clients often send arrays as JSON-encoded strings
        if value is None:
            return []
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return []
            if text.startswith("["):
                try:
                    value = json.loads(text)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Invalid JSON array: {e}") from e
            else:
                return [value]
        if isinstance(value, (list, tuple)):
            return [item if isinstance(item, str) else str(item) for item in value]
        return value

    @field_validator("labels", mode="before")
    @classmethod
    def _coerce_labels(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            if not value.strip():
                return {}
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON object: {e}") from e
        if isinstance(value, dict):
            return {str(k): v if isinstance(v, str) else str(v) for k, v in value.items()}
        return value


@dataclass(frozen=True)
class PortMapping:
    host_port: int
    container_port: int
    protocol: str = "tcp"

    def encode(self) -> str:
        return f"{self.host_port}:{self.container_port}/{self.protocol}"


@dataclass(frozen=True)
class VolumeMapping:
    host_path: str
    container_path: str
    mode: str = "rw"

    def encode(self) -> str:
        return f"{self.host_path}:{self.container_path}:{self.mode}"


@dataclass(frozen=True)
class DeviceMapping:
    host_path: str
    container_path: str
    permissions: str = "rwm"

    def encode(self) -> str:
        return f"{self.host_path}:{self.container_path}:{self.permissions}"


@dataclass(frozen=True)
class UlimitSpec:
    name: str
    soft: int
    hard: int

    def encode(self) -> str:
        return f"{self.name}={self.soft}:{self.hard}"


@dataclass(frozen=True)
class TmpfsMount:
    container_path: str
    options: str = ""

    def encode(self) -> str:
        return f"{self.container_path}:{self.options}" if self.options else self.container_path


@dataclass(frozen=True)
class ExtraHost:
    hostname: str
    address: str

    def encode(self) -> str:
        return f"{self.hostname}:{self.address}"


@dataclass(frozen=True)
class ResourceLimits:
    memory_bytes: int | None = None
    nano_cpus: int | None = None


@dataclass(frozen=True)
class SecurityProfile:
    """Validated security settings for one container"""

    cap_add: tuple[str, ...] = ()
    cap_drop: tuple[str, ...] = ()
    security_opts: tuple[str, ...] = ()
    user: str = "1000:1000"
    read_only_rootfs: bool = False
    privileged: bool = False


@dataclass(frozen=True)
class NormalizedContainerSpec:
    """
    Fully validated container specification.

    Produced only by the compiler; the runtime layer reads it and never
    changes it. Collections are tuples and labels a read-only mapping.
    """

    image: str
    name: str | None = None
    command: tuple[str, ...] = ()
    env: tuple[str, ...] = ()
    ports: tuple[PortMapping, ...] = ()
    volumes: tuple[VolumeMapping, ...] = ()
    devices: tuple[DeviceMapping, ...] = ()
    ulimits: tuple[UlimitSpec, ...] = ()
    tmpfs: tuple[TmpfsMount, ...] = ()
    extra_hosts: tuple[ExtraHost, ...] = ()
    dns: tuple[str, ...] = ()
    resources: ResourceLimits = field(default_factory=ResourceLimits)
    security: SecurityProfile = field(default_factory=SecurityProfile)
    network_mode: str | None = None
    restart_policy: str = "no"
    labels: Mapping[str, str] = field(default_factory=dict)
    working_dir: str | None = None
    hostname: str | None = None
    domainname: str | None = None
    detach: bool = True
    auto_remove: bool = False
    interactive: bool = False
    tty: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.labels, MappingProxyType):
            object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-friendly view, using the canonical string encodings"""
        return {
            "image": self.image,
            "name": self.name,
            "command": list(self.command),
            "env": list(self.env),
            "ports": [p.encode() for p in self.ports],
            "volumes": [v.encode() for v in self.volumes],
            "devices": [d.encode() for d in self.devices],
            "ulimits": [u.encode() for u in self.ulimits],
            "tmpfs": [t.encode() for t in self.tmpfs],
            "extra_hosts": [h.encode() for h in self.extra_hosts],
            "dns": list(self.dns),
            "resources": asdict(self.resources),
            "security": {
                "cap_add": list(self.security.cap_add),
                "cap_drop": list(self.security.cap_drop),
                "security_opts": list(self.security.security_opts),
                "user": self.security.user,
                "read_only_rootfs": self.security.read_only_rootfs,
                "privileged": self.security.privileged,
            },
            "network_mode": self.network_mode,
            "restart_policy": self.restart_policy,
            "labels": dict(self.labels),
            "working_dir": self.working_dir,
            "hostname": self.hostname,
            "domainname": self.domainname,
            "detach": self.detach,
            "auto_remove": self.auto_remove,
            "interactive": self.interactive,
            "tty": self.tty,
        }
