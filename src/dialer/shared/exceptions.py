"""
Shared exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class AppError(Exception):
    message: str = "Application error"
    details: Optional[dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


class NotFoundError(AppError):
    pass


class ValidationError(AppError):
    pass


class InvalidDepartmentError(ValidationError):
    def __init__(self, department: object) -> None:
        from dialer.calls.models import Department

        allowed = ", ".join(d.value for d in Department)
        super().__init__(
            message=f"Invalid department. Must be one of {allowed}",
            details={"department": department},
        )
        self.department = department


class ConfigurationError(AppError):
    pass


class StorageError(AppError):
    """Persistence failure during a read or write against the call store."""

    def __init__(
        self,
        message: str = "Storage failure",
        call_sid: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            details={"call_sid": call_sid, "operation": operation},
        )
        self.call_sid = call_sid
        self.operation = operation
