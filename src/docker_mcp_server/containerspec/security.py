"""
Security validation for container configurations.

Checks, in order: capabilities against the known Linux capability table,
security options against the allowed prefixes, the user specification
against the non-root policy, and device mappings against the dangerous
device list and permission syntax. Validators collect every violation
instead of stopping at the first one.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from .errors import ErrorKind, ParseResult, ValidationError
from .models import DeviceMapping, SecurityProfile, TmpfsMount, UlimitSpec
from .parsers import parse_device
from .policy import DEFAULT_POLICY, SecurityPolicy

logger = logging.getLogger(__name__)

ALL_CAPABILITIES = "ALL"
ROOT_USER_NAMES = ("root", "0")


def normalize_capability(capability: str) -> str:
    """'net_admin' -> 'CAP_NET_ADMIN'; 'all' -> 'ALL'"""
    normalized = capability.strip().upper()
    if normalized == ALL_CAPABILITIES:
        return normalized
    if not normalized.startswith("CAP_"):
        normalized = "CAP_" + normalized
    return normalized


def validate_capabilities(
    capabilities: Iterable[str],
    field: str = "cap_add",
    policy: SecurityPolicy = DEFAULT_POLICY,
) -> tuple[tuple[str, ...], list[ValidationError]]:
    """Normalize and whitelist capability names; blank entries are ignored"""
    accepted: list[str] = []
    errors: list[ValidationError] = []

    for index, capability in enumerate(capabilities):
        if not capability or not capability.strip():
            continue
        normalized = normalize_capability(capability)
        if normalized == ALL_CAPABILITIES or normalized in policy.known_capabilities:
            if normalized not in accepted:
                accepted.append(normalized)
        else:
            errors.append(
                ValidationError(
                    field=f"{field}[{index}]",
                    reason=f"Unknown capability: {capability}. Use 'ALL' or one of the known Linux capabilities",
                    kind=ErrorKind.UNKNOWN_CAPABILITY,
                )
            )

    return tuple(accepted), errors


def validate_security_options(
    options: Iterable[str],
    field: str = "security_opt",
    policy: SecurityPolicy = DEFAULT_POLICY,
) -> tuple[tuple[str, ...], list[ValidationError]]:
    """Accept only options that start with an allowed prefix (case-insensitive)"""
    accepted: list[str] = []
    errors: list[ValidationError] = []
    prefixes = tuple(p.lower() for p in policy.security_opt_prefixes)

    for index, option in enumerate(options):
        if not option or not option.strip():
            continue
        option = option.strip()
        if option.lower().startswith(prefixes):
            if option not in accepted:
                accepted.append(option)
        else:
            errors.append(
                ValidationError(
                    field=f"{field}[{index}]",
                    reason=(
                        f"Invalid security option: {option}. "
                        f"Allowed prefixes: {', '.join(policy.security_opt_prefixes)}"
                    ),
                    kind=ErrorKind.INVALID_SECURITY_OPTION,
                )
            )

    return tuple(accepted), errors


def _is_root_name(name: str) -> bool:
    # "00" and "000" are uid 0 as well
    return name in ROOT_USER_NAMES or (name.isascii() and name.isdigit() and int(name) == 0)


def validate_user(
    user: str | None, field: str = "user", policy: SecurityPolicy = DEFAULT_POLICY
) -> ParseResult[str]:
    """
    Resolve the user a container runs as.

    Missing or blank falls back to the policy's non-root default. Root ('root'
    or any all-zero uid, with or without a group) is rejected unless the policy
    explicitly allows it.
    """
    if user is None or not user.strip():
        return ParseResult.success(policy.default_user)

    user = user.strip()
    parts = user.split(":")
    is_root = _is_root_name(parts[0])
    if is_root and not policy.allow_root_user:
        return ParseResult.failure(
            field,
            "Running containers as root is not allowed. Use a non-root user",
            ErrorKind.PROHIBITED_ROOT_USER,
        )

    if len(parts) > 2 or not all(parts):
        return ParseResult.failure(
            field,
            f"Invalid user specification '{user}'. Use 'user', 'user:group', 'uid', or 'uid:gid'",
            ErrorKind.MALFORMED_FORMAT,
        )

    if is_root:
        logger.warning(f"Container will run as root ('{user}'): permitted by policy")
    return ParseResult.success(user)


def find_dangerous_device(
    host_path: str, policy: SecurityPolicy = DEFAULT_POLICY
) -> str | None:
    """Return the blacklisted prefix matched by host_path, if any"""
    for prefix in policy.dangerous_device_prefixes:
        if host_path.startswith(prefix):
            return prefix
    return None


def validate_device(
    value: str, field: str = "devices", policy: SecurityPolicy = DEFAULT_POLICY
) -> tuple[DeviceMapping | None, list[ValidationError]]:
    """Check one device mapping for safety first, then for format and permissions"""
    errors: list[ValidationError] = []

    host_path = value.split(":", 1)[0].strip()
    if host_path and find_dangerous_device(host_path, policy):
        errors.append(
            ValidationError(
                field=field,
                reason=f"Device {host_path} is potentially dangerous and not allowed",
                kind=ErrorKind.DANGEROUS_DEVICE,
            )
        )

    parsed = parse_device(value, field, policy.default_device_permissions)
    if not parsed.ok:
        errors.append(parsed.error)

    if errors:
        return None, errors
    return parsed.value, []


def validate_devices(
    devices: Iterable[str], field: str = "devices", policy: SecurityPolicy = DEFAULT_POLICY
) -> tuple[tuple[DeviceMapping, ...], list[ValidationError]]:
    mappings: list[DeviceMapping] = []
    errors: list[ValidationError] = []
    for index, device in enumerate(devices):
        mapping, device_errors = validate_device(device, f"{field}[{index}]", policy)
        if mapping is not None:
            mappings.append(mapping)
        errors.extend(device_errors)
    return tuple(mappings), errors


def build_security_profile(
    cap_add: Iterable[str] = (),
    cap_drop: Iterable[str] = (),
    security_opt: Iterable[str] = (),
    user: str | None = None,
    read_only: bool = False,
    privileged: bool = False,
    policy: SecurityPolicy = DEFAULT_POLICY,
) -> tuple[SecurityProfile | None, list[ValidationError]]:
    """Validate every security-related setting and return a profile or all violations"""
    errors: list[ValidationError] = []

    added, cap_errors = validate_capabilities(cap_add, "cap_add", policy)
    errors.extend(cap_errors)
    dropped, cap_errors = validate_capabilities(cap_drop, "cap_drop", policy)
    errors.extend(cap_errors)
    options, opt_errors = validate_security_options(security_opt, "security_opt", policy)
    errors.extend(opt_errors)
    resolved_user = validate_user(user, "user", policy)
    if not resolved_user.ok:
        errors.append(resolved_user.error)

    if errors:
        return None, errors

    if privileged:
        logger.warning("Container requested privileged mode")

    profile = SecurityProfile(
        cap_add=added,
        cap_drop=dropped,
        security_opts=options,
        user=resolved_user.value,
        read_only_rootfs=read_only,
        privileged=privileged,
    )
    return profile, []


def secure_tmpfs_mounts(policy: SecurityPolicy = DEFAULT_POLICY) -> tuple[TmpfsMount, ...]:
    """Default noexec/nosuid tmpfs mounts for hardened containers"""
    return tuple(TmpfsMount(path, options) for path, options in policy.secure_tmpfs_mounts)


def secure_ulimits(policy: SecurityPolicy = DEFAULT_POLICY) -> tuple[UlimitSpec, ...]:
    """Default ulimits for hardened containers"""
    return tuple(UlimitSpec(name, soft, hard) for name, soft, hard in policy.secure_ulimits)


def apparmor_profile(profile_name: str | None = None) -> list[str]:
    """Security option selecting an AppArmor profile (Docker's default if omitted)"""
    return [f"apparmor:{profile_name or 'docker-default'}"]


def seccomp_profile(profile_path: str | None = None) -> list[str]:
    """
    Security option selecting a seccomp profile.

    Raises:
        FileNotFoundError: If a profile path is given but does not exist.
    """
    if not profile_path:
        return ["seccomp:docker-default"]
    if not Path(profile_path).is_file():
        raise FileNotFoundError(f"Seccomp profile not found: {profile_path}")
    return [f"seccomp:{profile_path}"]
