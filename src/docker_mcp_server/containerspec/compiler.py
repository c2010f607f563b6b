"""
Container spec compiler.

Turns a RawContainerRequest into a NormalizedContainerSpec by running every
field through the parsers, the resource normalizer and the security
validator. Errors are accumulated across all fields so a caller sees every
problem in one pass.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import pydantic

from .errors import ContainerSpecError, ErrorKind, ParseResult, ValidationError
from .models import NormalizedContainerSpec, RawContainerRequest, ResourceLimits
from .parsers import (
    is_absolute_container_path,
    parse_env,
    parse_extra_host,
    parse_port,
    parse_tmpfs,
    parse_ulimit,
    parse_volume,
)
from .policy import DEFAULT_POLICY, SecurityPolicy
from .resources import parse_cpu_limit, parse_memory_limit
from .security import build_security_profile, secure_tmpfs_mounts, secure_ulimits, validate_devices

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONTAINER_NAME = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")

DEFAULT_RESTART_POLICY = "no"
NO_NEW_PRIVILEGES = "no-new-privileges"


@dataclass(frozen=True)
class CompileResult:
    """Either a spec or a non-empty, ordered list of errors, never both"""

    spec: NormalizedContainerSpec | None = None
    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.spec is not None

    def unwrap(self) -> NormalizedContainerSpec:
        """Return the spec or raise ContainerSpecError with every error"""
        if self.spec is None:
            raise ContainerSpecError(list(self.errors))
        return self.spec


def _parse_each(
    values: Iterable[str],
    field_name: str,
    parser: Callable[..., ParseResult[T]],
    errors: list[ValidationError],
    **kwargs: Any,
) -> tuple[T, ...]:
    parsed: list[T] = []
    for index, value in enumerate(values):
        result = parser(value, f"{field_name}[{index}]", **kwargs)
        if result.ok:
            parsed.append(result.value)
        else:
            errors.append(result.error)
    return tuple(parsed)


def _validate_image(image: str, errors: list[ValidationError]) -> None:
    name = image.strip().split("@", 1)[0]
    # a tag follows the last ':' only when no '/' comes after it (registry ports)
    if ":" in name.rsplit("/", 1)[-1]:
        name = name.rsplit(":", 1)[0]
    if not name or "//" in name or name.startswith("/") or name.endswith("/") or any(c.isspace() for c in name):
        errors.append(
            ValidationError(
                field="image",
                reason=f"Invalid image reference '{image}'",
                kind=ErrorKind.MALFORMED_FORMAT,
            )
        )


def _resolve_restart_policy(value: str | None, policy: SecurityPolicy) -> str:
    if not value or not value.strip():
        return DEFAULT_RESTART_POLICY
    normalized = value.strip().lower()
    if normalized in policy.restart_policies:
        return normalized
    logger.warning(f"Unrecognized restart policy '{value}', falling back to '{DEFAULT_RESTART_POLICY}'")
    return DEFAULT_RESTART_POLICY


def _merge_defaults(supplied: tuple[T, ...], defaults: tuple[T, ...], key: Callable[[T], str]) -> tuple[T, ...]:
    """Defaults first, with caller-supplied entries replacing same-keyed defaults"""
    overridden = {key(item) for item in supplied}
    return tuple(d for d in defaults if key(d) not in overridden) + supplied


def compile_container_request(
    request: RawContainerRequest, policy: SecurityPolicy = DEFAULT_POLICY
) -> CompileResult:
    """
    Validate and normalize a container request.

    Args:
        request: The raw request built from tool arguments.
        policy: Security tables and defaults to validate against.

    Returns:
        CompileResult with the normalized spec, or every validation error found.
    """
    errors: list[ValidationError] = []

    _validate_image(request.image, errors)

    name = request.name.strip() if request.name and request.name.strip() else None
    if name is not None and not _CONTAINER_NAME.fullmatch(name):
        errors.append(
            ValidationError(
                field="name",
                reason=f"Invalid container name '{name}': must match [a-zA-Z0-9][a-zA-Z0-9_.-]*",
                kind=ErrorKind.MALFORMED_FORMAT,
            )
        )

    working_dir = request.working_dir.strip() if request.working_dir and request.working_dir.strip() else None
    if working_dir is not None and not is_absolute_container_path(working_dir):
        errors.append(
            ValidationError(
                field="working_dir",
                reason=f"Working directory '{working_dir}' must be an absolute path",
                kind=ErrorKind.MALFORMED_FORMAT,
            )
        )

    env = _parse_each(request.environment, "environment", parse_env, errors, sanitize=request.sanitize_env)
    ports = _parse_each(request.ports, "ports", parse_port, errors)
    volumes = _parse_each(request.volumes, "volumes", parse_volume, errors)
    ulimits = _parse_each(request.ulimits, "ulimits", parse_ulimit, errors)
    tmpfs = _parse_each(request.tmpfs, "tmpfs", parse_tmpfs, errors)
    extra_hosts = _parse_each(request.extra_hosts, "extra_hosts", parse_extra_host, errors)

    devices, device_errors = validate_devices(request.devices, "devices", policy)
    errors.extend(device_errors)

    memory_bytes = None
    if request.memory_limit is not None and request.memory_limit.strip():
        memory = parse_memory_limit(request.memory_limit)
        if memory.ok:
            memory_bytes = memory.value
        else:
            errors.append(memory.error)

    nano_cpus = None
    if request.cpu_limit is not None:
        cpus = parse_cpu_limit(request.cpu_limit)
        if cpus.ok:
            nano_cpus = cpus.value
        else:
            errors.append(cpus.error)

    cap_drop = list(request.cap_drop)
    security_opt = list(request.security_opt)
    read_only = request.read_only
    if request.harden:
        if not any(c.strip() for c in cap_drop):
            cap_drop = ["ALL"]
        if not any(o.strip().lower().startswith(NO_NEW_PRIVILEGES) for o in security_opt):
            security_opt.append(NO_NEW_PRIVILEGES)
        read_only = True
        tmpfs = _merge_defaults(tmpfs, secure_tmpfs_mounts(policy), key=lambda t: t.container_path)
        ulimits = _merge_defaults(ulimits, secure_ulimits(policy), key=lambda u: u.name)

    security, security_errors = build_security_profile(
        cap_add=request.cap_add,
        cap_drop=cap_drop,
        security_opt=security_opt,
        user=request.user,
        read_only=read_only,
        privileged=request.privileged,
        policy=policy,
    )
    errors.extend(security_errors)

    if errors:
        logger.debug(f"Container request for '{request.image}' rejected with {len(errors)} error(s)")
        return CompileResult(errors=tuple(errors))

    command = tuple(([request.command] if request.command else []) + list(request.args))

    spec = NormalizedContainerSpec(
        image=request.image.strip(),
        name=name,
        command=command,
        env=env,
        ports=ports,
        volumes=volumes,
        devices=devices,
        ulimits=ulimits,
        tmpfs=tmpfs,
        extra_hosts=extra_hosts,
        dns=tuple(d.strip() for d in request.dns if d.strip()),
        resources=ResourceLimits(memory_bytes=memory_bytes, nano_cpus=nano_cpus),
        security=security,
        network_mode=request.network.strip() if request.network and request.network.strip() else None,
        restart_policy=_resolve_restart_policy(request.restart_policy, policy),
        labels=request.labels,
        working_dir=working_dir,
        hostname=request.hostname or None,
        domainname=request.domainname or None,
        detach=request.detach,
        auto_remove=request.auto_remove,
        interactive=request.interactive,
        tty=request.tty,
    )
    logger.debug(f"Compiled container spec for image '{spec.image}'")
    return CompileResult(spec=spec)


def compile_container_arguments(
    arguments: dict[str, Any], policy: SecurityPolicy = DEFAULT_POLICY
) -> CompileResult:
    """
    Build a RawContainerRequest from loose tool arguments and compile it.

    Type errors raised while building the request (e.g. a non-numeric CPU
    limit) come back as MalformedFormat errors; the field-level checks only
    run once the request is well-typed.
    """
    try:
        request = RawContainerRequest.model_validate(arguments)
    except pydantic.ValidationError as e:
        errors = tuple(
            ValidationError(
                field=".".join(str(part) for part in err["loc"]) or "request",
                reason=err["msg"],
                kind=ErrorKind.MALFORMED_FORMAT,
            )
            for err in e.errors()
        )
        return CompileResult(errors=errors)
    return compile_container_request(request, policy)
