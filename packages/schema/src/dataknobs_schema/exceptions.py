"""Exception hierarchy for the schema engine.

Two families of errors live here:

- **Definition errors** are programmer mistakes in how a schema tree was
  assembled (a discriminated union member without a literal tag, a negative
  length bound, ...). They are raised eagerly while the schema is being
  built, never while a value is being validated.
- **Validation errors** describe why a value did not satisfy a schema. They
  carry a closed ``ErrorKind``, a message and a root-relative path, and can be
  converted to plain data for rendering outside of Python.

Example:
    ```python
    from dataknobs_schema import object_, string, number, ErrorKind

    validator = object_({"name": string().min_length(3), "age": number().min(18)}).to_validator()
    result = validator.safe_parse({"name": "Jo", "age": 15})
    result.error.kind
    # <ErrorKind.AGGREGATE: 'aggregate'>
    [e.path for e in result.error.errors]
    # [['name'], ['age']]
    ```
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Sequence, Union

PathSegment = Union[str, int]


class ErrorKind(str, Enum):
    """Closed taxonomy of validation failures."""

    TYPE_MISMATCH = "type_mismatch"
    CONSTRAINT_VIOLATION = "constraint_violation"
    REFINEMENT_FAILURE = "refinement_failure"
    MISSING_KEY = "missing_key"
    UNEXPECTED_KEY = "unexpected_key"
    UNION_NO_MATCH = "union_no_match"
    DISCRIMINATOR_MISSING = "discriminator_missing"
    DISCRIMINATOR_UNMATCHED = "discriminator_unmatched"
    TRANSFORM_FAILURE = "transform_failure"
    ASYNC_REQUIRED = "async_required"
    AGGREGATE = "aggregate"


class SchemaError(Exception):
    """Base exception for the schema package.

    Mirrors the dataknobs exception shape: a human readable message plus an
    optional context dictionary (``details`` is accepted as an alias).

    Args:
        message: Human-readable error message
        context: Optional dictionary with error context
        details: Alternative to context (takes precedence when both are given)
    """

    def __init__(
        self,
        message: str,
        context: Dict[str, Any] | None = None,
        details: Dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.context = details or context or {}
        self.details = self.context


class SchemaDefinitionError(SchemaError):
    """Raised when a schema tree is assembled incorrectly.

    Example:
        ```python
        raise SchemaDefinitionError(
            "Duplicate discriminator value 'cat'",
            context={"discriminator": "type", "value": "cat"}
        )
        ```
    """

    pass


class ValidationError(SchemaError):
    """A single validation failure.

    Attributes:
        kind: The failure category
        message: Human-readable description
        path: Property names / indices from the validated root to the failure
        errors: Child failures (aggregates and union mismatches only)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        path: Sequence[PathSegment] | None = None,
        errors: Sequence[ValidationError] | None = None,
        context: Dict[str, Any] | None = None,
    ):
        self.kind = ErrorKind(kind)
        self.message = message
        self.path: List[PathSegment] = list(path or [])
        self.errors: List[ValidationError] = list(errors or [])
        super().__init__(message, context=context)

    def __str__(self) -> str:
        if self.path:
            return f"{self.format_path()}: {self.message}"
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, path={self.path!r})"

    def format_path(self) -> str:
        """Render the path as ``contacts[1].address.zipCode``."""
        return format_path(self.path)

    def iter_leaves(self):
        """Yield every non-aggregate error in order (depth first)."""
        if self.kind is ErrorKind.AGGREGATE:
            for child in self.errors:
                yield from child.iter_leaves()
        else:
            yield self

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error (and its children) to plain data."""
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
            "path": list(self.path),
        }
        if self.errors:
            data["errors"] = [child.to_dict() for child in self.errors]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ValidationError:
        """Rebuild an error tree from ``to_dict`` output."""
        kind = ErrorKind(data["kind"])
        children = [ValidationError.from_dict(child) for child in data.get("errors", [])]
        error_cls = _KIND_CLASSES.get(kind, ValidationError)
        if error_cls is ValidationError:
            return ValidationError(kind, data["message"], data.get("path"), children)
        return error_cls(data["message"], data.get("path"), children)


class AggregateError(ValidationError):
    """Composite failure bundling child errors with root-relative paths."""

    def __init__(
        self,
        message: str,
        path: Sequence[PathSegment] | None = None,
        errors: Sequence[ValidationError] | None = None,
    ):
        super().__init__(ErrorKind.AGGREGATE, message, path, errors)


class AsyncRequiredError(ValidationError):
    """Raised when a synchronous entry point meets an async refinement or transform."""

    def __init__(
        self,
        message: str = "Schema contains asynchronous refinements or transforms; use validate_async",
        path: Sequence[PathSegment] | None = None,
        errors: Sequence[ValidationError] | None = None,
    ):
        super().__init__(ErrorKind.ASYNC_REQUIRED, message, path, errors)


_KIND_CLASSES = {
    ErrorKind.AGGREGATE: AggregateError,
    ErrorKind.ASYNC_REQUIRED: AsyncRequiredError,
}


def format_path(path: Sequence[PathSegment]) -> str:
    """Render a path sequence in dotted/bracket notation."""
    parts: List[str] = []
    for segment in path:
        if isinstance(segment, int) and not isinstance(segment, bool):
            parts.append(f"[{segment}]")
        elif parts:
            parts.append(f".{segment}")
        else:
            parts.append(str(segment))
    return "".join(parts)


__all__ = [
    "ErrorKind",
    "PathSegment",
    "SchemaError",
    "SchemaDefinitionError",
    "ValidationError",
    "AggregateError",
    "AsyncRequiredError",
    "format_path",
]
