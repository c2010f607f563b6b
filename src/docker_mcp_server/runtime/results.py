"""
Uniform result envelope returned by every Docker tool
"""

from dataclasses import dataclass, field
from typing import Any

from ..containerspec.errors import ValidationError


@dataclass
class CommandResult:
    """Outcome of a Docker operation as reported back to the MCP client"""

    success: bool
    message: str = ""
    error_message: str | None = None
    container_id: str | None = None
    data: Any = None
    validation_errors: list[ValidationError] = field(default_factory=list)

    @classmethod
    def ok(cls, message: str, data: Any = None, container_id: str | None = None) -> "CommandResult":
        return cls(success=True, message=message, data=data, container_id=container_id)

    @classmethod
    def failure(cls, message: str, error_message: str | None = None, data: Any = None) -> "CommandResult":
        return cls(success=False, message=message, error_message=error_message, data=data)

    @classmethod
    def from_validation_errors(cls, errors: list[ValidationError], subject: str = "container") -> "CommandResult":
        """Failed result listing every validation problem found in a request"""
        return cls(
            success=False,
            message=f"Invalid {subject} configuration: {len(errors)} validation error(s)",
            error_message="; ".join(str(e) for e in errors),
            validation_errors=list(errors),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error_message is not None:
            result["error_message"] = self.error_message
        if self.container_id is not None:
            result["container_id"] = self.container_id
        if self.data is not None:
            result["data"] = self.data
        if self.validation_errors:
            result["validation_errors"] = [e.to_dict() for e in self.validation_errors]
        return result
