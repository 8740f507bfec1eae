"""Validation result and per-call execution context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict

from .exceptions import ValidationError

if TYPE_CHECKING:
    from .config import ValidatorConfig


@dataclass
class ValidationResult:
    """Outcome of ``safe_parse``/``validate_async``.

    Either ``success`` is True and ``data`` holds the (possibly transformed)
    value, or ``success`` is False and ``error`` holds the failure.
    """

    success: bool
    data: Any = None
    error: ValidationError | None = None

    def __bool__(self) -> bool:
        """Allow 'if result:' usage to check success."""
        return self.success

    @classmethod
    def ok(cls, data: Any) -> ValidationResult:
        """Create a successful result.

        Args:
            data: The validated value

        Returns:
            Successful ValidationResult
        """
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ValidationError) -> ValidationResult:
        """Create a failed result.

        Args:
            error: The validation failure

        Returns:
            Failed ValidationResult
        """
        return cls(success=False, error=error)

    def unwrap(self) -> Any:
        """Return the data or raise the stored error."""
        if self.success:
            return self.data
        assert self.error is not None
        raise self.error

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form; failed results only carry the error."""
        if self.success:
            return {"success": True, "data": self.data}
        assert self.error is not None
        return {"success": False, "error": self.error.to_dict()}


@dataclass
class ExecutionContext:
    """State for a single validation call.

    Nothing in here outlives the call: the resolution memo for lazy nodes is
    call-scoped so that concurrent validations never observe each other.
    """

    allow_async: bool = False
    config: ValidatorConfig | None = None
    resolved: Dict[int, Any] = field(default_factory=dict)

    @property
    def abort_early(self) -> bool:
        return bool(self.config and self.config.abort_early)

    @property
    def flatten_errors(self) -> bool:
        return self.config is None or self.config.flatten_errors
