"""
Validation error types for the container-spec compiler
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Categories of container-spec validation failures"""

    MALFORMED_FORMAT = "MalformedFormat"
    INVALID_RESOURCE_LIMIT = "InvalidResourceLimit"
    UNKNOWN_CAPABILITY = "UnknownCapability"
    INVALID_SECURITY_OPTION = "InvalidSecurityOption"
    PROHIBITED_ROOT_USER = "ProhibitedRootUser"
    DANGEROUS_DEVICE = "DangerousDevice"
    INVALID_ENVIRONMENT_KEY = "InvalidEnvironmentKey"


@dataclass(frozen=True)
class ValidationError:
    """A single rejected input: which field, why, and the error category"""

    field: str
    reason: str
    kind: ErrorKind

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "kind": self.kind.value, "reason": self.reason}

    def __str__(self) -> str:
        return f"{self.field}: {self.reason} ({self.kind.value})"


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """
    Outcome of a single parse: either a value or a ValidationError.

    Parsers return this instead of raising so the compiler can keep going
    and report every problem in one pass.
    """

    value: T | None = None
    error: ValidationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, field: str, reason: str, kind: ErrorKind) -> "ParseResult[T]":
        return cls(error=ValidationError(field=field, reason=reason, kind=kind))


def malformed(field: str, reason: str) -> ParseResult:
    """Shorthand for the most common failure"""
    return ParseResult.failure(field, reason, ErrorKind.MALFORMED_FORMAT)


class ContainerSpecError(ValueError):
    """Raised by CompileResult.unwrap() when a request failed validation"""

    def __init__(self, errors: list[ValidationError]):
        self.errors = list(errors)
        summary = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} validation error(s): {summary}")
