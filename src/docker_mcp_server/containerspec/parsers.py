"""
Parsers for the colon-delimited string encodings used in container configs.

Every parser is a pure function: it takes the raw string and the field label
to report, and returns a ParseResult holding either the typed record or a
ValidationError. Nothing here raises for bad input.
"""

import ipaddress
import re

from .errors import ErrorKind, ParseResult, malformed
from .models import DeviceMapping, ExtraHost, PortMapping, TmpfsMount, UlimitSpec, VolumeMapping

PORT_MIN = 1
PORT_MAX = 65535
PORT_PROTOCOLS = ("tcp", "udp")
VOLUME_MODES = ("rw", "ro")
DEVICE_PERMISSION_FLAGS = frozenset("rwm")

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:[\\/]")
_DRIVE_LETTER = re.compile(r"^[A-Za-z]$")
_ENV_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DIGITS = re.compile(r"^\d+$")


def is_absolute_container_path(path: str) -> bool:
    """POSIX-absolute, or drive-rooted for Windows containers"""
    return path.startswith("/") or bool(_DRIVE_PREFIX.match(path))


def _starts_drive_path(raw: list[str], i: int, position: int) -> bool:
    if position > 1 or not _DRIVE_LETTER.fullmatch(raw[i]) or i + 1 >= len(raw):
        return False
    nxt = raw[i + 1]
    if nxt.startswith("\\"):
        return True
    if not nxt.startswith("/"):
        return False
    if position == 1:
        return True
    # a one-letter named volume ('v:/app') must not be read as a drive;
    # only join when a container path still follows
    rest = raw[i + 2 :]
    return bool(rest) and (rest[0].startswith(("/", "\\")) or bool(_DRIVE_LETTER.fullmatch(rest[0])))


def split_mount(value: str) -> list[str]:
    """
    Split a mount-style string on ':' without breaking Windows drive prefixes.

    'C:\\data:/app:ro' -> ['C:\\data', '/app', 'ro']
    """
    raw = value.split(":")
    parts: list[str] = []
    i = 0
    while i < len(raw):
        if _starts_drive_path(raw, i, len(parts)):
            parts.append(f"{raw[i]}:{raw[i + 1]}")
            i += 2
        else:
            parts.append(raw[i])
            i += 1
    return parts


def _parse_port_number(text: str) -> int | None:
    text = text.strip()
    if not _DIGITS.fullmatch(text):
        return None
    number = int(text)
    if not PORT_MIN <= number <= PORT_MAX:
        return None
    return number


def parse_port(value: str, field: str = "ports") -> ParseResult[PortMapping]:
    """Parse 'host:container[/tcp|/udp]'"""
    expected = "expected 'host:container[/tcp|/udp]' with ports in 1-65535"
    parts = value.split(":")
    if len(parts) != 2:
        return malformed(field, f"Invalid port mapping '{value}': {expected}")

    host_text, container_text = parts
    protocol = "tcp"
    if "/" in container_text:
        container_text, protocol = container_text.split("/", 1)
        protocol = protocol.strip().lower()
        if protocol not in PORT_PROTOCOLS:
            return malformed(field, f"Invalid port protocol '{protocol}' in '{value}': {expected}")

    host_port = _parse_port_number(host_text)
    container_port = _parse_port_number(container_text)
    if host_port is None or container_port is None:
        return malformed(field, f"Invalid port mapping '{value}': {expected}")

    return ParseResult.success(PortMapping(host_port, container_port, protocol))


def parse_volume(value: str, field: str = "volumes") -> ParseResult[VolumeMapping]:
    """Parse 'host:container[:ro|rw]'"""
    expected = "expected 'host:container[:ro|rw]' with an absolute container path"
    parts = split_mount(value)
    if len(parts) not in (2, 3):
        return malformed(field, f"Invalid volume mount '{value}': {expected}")

    host_path, container_path = parts[0].strip(), parts[1].strip()
    mode = parts[2].strip() if len(parts) == 3 else "rw"

    if not host_path or not container_path:
        return malformed(field, f"Invalid volume mount '{value}': {expected}")
    if not is_absolute_container_path(container_path):
        return malformed(field, f"Container path '{container_path}' must be absolute")
    if mode not in VOLUME_MODES:
        return malformed(field, f"Invalid volume mode '{mode}' in '{value}': use 'ro' or 'rw'")

    return ParseResult.success(VolumeMapping(host_path, container_path, mode))


def parse_device_permissions(permissions: str, field: str = "devices") -> ParseResult[str]:
    """A non-empty combination of r, w and m, each at most once"""
    if (
        not permissions
        or any(c not in DEVICE_PERMISSION_FLAGS for c in permissions)
        or len(set(permissions)) != len(permissions)
    ):
        return malformed(
            field,
            f"Invalid device permissions '{permissions}': use a combination of 'r', 'w', 'm' without repeats",
        )
    return ParseResult.success(permissions)


def parse_device(
    value: str, field: str = "devices", default_permissions: str = "rwm"
) -> ParseResult[DeviceMapping]:
    """Parse 'host:container[:permissions]'"""
    expected = "expected '/host/device:/container/device[:permissions]'"
    parts = value.split(":")
    if len(parts) < 2 or len(parts) > 3:
        return malformed(field, f"Invalid device mapping '{value}': {expected}")

    host_path, container_path = parts[0].strip(), parts[1].strip()
    if not host_path or not container_path:
        return malformed(field, f"Invalid device mapping '{value}': {expected}")

    permissions = parts[2] if len(parts) == 3 else default_permissions
    checked = parse_device_permissions(permissions, field)
    if not checked.ok:
        return ParseResult(error=checked.error)

    return ParseResult.success(DeviceMapping(host_path, container_path, permissions))


def parse_ulimit(value: str, field: str = "ulimits") -> ParseResult[UlimitSpec]:
    """Parse 'name=soft:hard'"""
    expected = "expected 'name=soft:hard' with non-negative integers and soft <= hard"
    parts = value.split("=")
    if len(parts) != 2 or not parts[0].strip():
        return malformed(field, f"Invalid ulimit '{value}': {expected}")

    name = parts[0].strip()
    limits = parts[1].split(":")
    if len(limits) != 2 or not all(_DIGITS.fullmatch(v.strip()) for v in limits):
        return malformed(field, f"Invalid ulimit '{value}': {expected}")

    soft, hard = (int(v.strip()) for v in limits)
    if soft > hard:
        return malformed(field, f"Invalid ulimit '{value}': soft limit {soft} exceeds hard limit {hard}")

    return ParseResult.success(UlimitSpec(name, soft, hard))


def parse_tmpfs(value: str, field: str = "tmpfs") -> ParseResult[TmpfsMount]:
    """Parse 'path[:options]'; options may be empty"""
    path, _, options = value.partition(":")
    path = path.strip()
    if not path or not is_absolute_container_path(path):
        return malformed(field, f"Invalid tmpfs mount '{value}': expected '/container/path[:options]'")
    return ParseResult.success(TmpfsMount(path, options.strip()))


def parse_extra_host(value: str, field: str = "extra_hosts") -> ParseResult[ExtraHost]:
    """Parse 'hostname:ip' (split on the first ':' so IPv6 addresses survive)"""
    hostname, _, address = value.partition(":")
    hostname, address = hostname.strip(), address.strip()
    if not hostname or not address:
        return malformed(field, f"Invalid extra host '{value}': expected 'hostname:ip'")

    if address != "host-gateway":
        try:
            ipaddress.ip_address(address.strip("[]"))
        except ValueError:
            return malformed(field, f"Invalid address '{address}' for extra host '{hostname}'")

    return ParseResult.success(ExtraHost(hostname, address))


def parse_env(value: str, field: str = "environment", sanitize: bool = False) -> ParseResult[str]:
    """
    Parse a 'KEY=value' entry (or bare 'KEY' to inherit from the daemon).

    With sanitize, the key must match [A-Za-z_][A-Za-z0-9_]* and is upper-cased.
    """
    key, sep, rest = value.partition("=")
    if not key.strip():
        return malformed(field, f"Invalid environment entry '{value}': expected 'KEY=value'")

    if sanitize:
        if not _ENV_KEY.fullmatch(key):
            return ParseResult.failure(
                field,
                f"Invalid environment variable key '{key}': must match [A-Za-z_][A-Za-z0-9_]*",
                ErrorKind.INVALID_ENVIRONMENT_KEY,
            )
        key = key.upper()

    return ParseResult.success(f"{key}{sep}{rest}")
