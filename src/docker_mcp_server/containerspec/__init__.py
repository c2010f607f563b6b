"""
Container configuration compiler and security validator
"""

from .compiler import CompileResult, compile_container_arguments, compile_container_request
from .errors import ContainerSpecError, ErrorKind, ParseResult, ValidationError
from .models import (
    DeviceMapping,
    ExtraHost,
    NormalizedContainerSpec,
    PortMapping,
    RawContainerRequest,
    ResourceLimits,
    SecurityProfile,
    TmpfsMount,
    UlimitSpec,
    VolumeMapping,
)
from .policy import DEFAULT_POLICY, SecurityPolicy

__all__ = [
    "compile_container_request",
    "compile_container_arguments",
    "CompileResult",
    "ContainerSpecError",
    "ErrorKind",
    "ParseResult",
    "ValidationError",
    "RawContainerRequest",
    "NormalizedContainerSpec",
    "PortMapping",
    "VolumeMapping",
    "DeviceMapping",
    "UlimitSpec",
    "TmpfsMount",
    "ExtraHost",
    "ResourceLimits",
    "SecurityProfile",
    "SecurityPolicy",
    "DEFAULT_POLICY",
]
