"""Built-in constraint predicates with a composable API.

Constraints are the synchronous, side-effect free checks that schema nodes
run after the structural check (``min_length``, ``max``, ``regex``, ...).
They can be combined with ``&`` (all must pass), ``|`` (at least one must
pass) and ``~`` (negation), and attached to any node with
``Schema.constrain``.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from numbers import Number
from re import Pattern as RegexPattern
from typing import TYPE_CHECKING, Any as AnyType, Iterable

from .exceptions import SchemaDefinitionError

if TYPE_CHECKING:
    from collections.abc import Callable


class Constraint(ABC):
    """A synchronous value check combinable with ``&``, ``|`` and ``~``."""

    def __init__(self, message: str | None = None):
        """Initialize the constraint.

        Args:
            message: Overrides the default failure message
        """
        self.message = message

    @abstractmethod
    def test(self, value: AnyType) -> bool:
        """Return True when ``value`` satisfies the constraint."""
        pass

    def default_message(self, value: AnyType) -> str:
        return "Constraint failed"

    def check(self, value: AnyType) -> str | None:
        """Run the constraint against ``value``.

        Args:
            value: Value to validate

        Returns:
            None on success, otherwise the failure message
        """
        if self.test(value):
            return None
        return self.message or self.default_message(value)

    def __and__(self, other: Constraint) -> All:
        """Both constraints must hold."""
        if isinstance(self, All):
            return All(self.constraints + [other])
        elif isinstance(other, All):
            return All([self] + other.constraints)
        return All([self, other])

    def __or__(self, other: Constraint) -> AnyOf:
        """Either constraint may hold."""
        if isinstance(self, AnyOf):
            return AnyOf(self.constraints + [other])
        elif isinstance(other, AnyOf):
            return AnyOf([self] + other.constraints)
        return AnyOf([self, other])

    def __invert__(self) -> Not:
        """Invert this constraint."""
        return Not(self)


class All(Constraint):
    """All constraints must pass (AND logic); reports the first failure."""

    def __init__(self, constraints: list[Constraint], message: str | None = None):
        super().__init__(message)
        self.constraints = constraints

    def test(self, value: AnyType) -> bool:
        return all(c.test(value) for c in self.constraints)

    def default_message(self, value: AnyType) -> str:
        for constraint in self.constraints:
            failure = constraint.check(value)
            if failure is not None:
                return failure
        return super().default_message(value)


class AnyOf(Constraint):
    """Passes when any child constraint passes."""

    def __init__(self, constraints: list[Constraint], message: str | None = None):
        super().__init__(message)
        self.constraints = constraints

    def test(self, value: AnyType) -> bool:
        return any(c.test(value) for c in self.constraints)

    def default_message(self, value: AnyType) -> str:
        failures = [c.check(value) for c in self.constraints]
        return f"None of the constraints passed: {', '.join(f for f in failures if f)}"


class Not(Constraint):
    """Passes exactly when the wrapped constraint fails."""

    def __init__(self, constraint: Constraint, message: str | None = None):
        super().__init__(message)
        self.constraint = constraint

    def test(self, value: AnyType) -> bool:
        return not self.constraint.test(value)

    def default_message(self, value: AnyType) -> str:
        return "Value should not satisfy constraint but it does"


class Range(Constraint):
    """Ordered value within inclusive or exclusive bounds."""

    def __init__(
        self,
        min: Number | None = None,
        max: Number | None = None,
        min_exclusive: bool = False,
        max_exclusive: bool = False,
        subject: str = "Number",
        message: str | None = None,
    ):
        """Create a range constraint.

        Args:
            min: Minimum value (inclusive by default)
            max: Maximum value (inclusive by default)
            min_exclusive: If True, value must be > min
            max_exclusive: If True, value must be < max
            subject: Noun used in the default message
            message: Overrides the default failure message
        """
        if min is not None and max is not None and min > max:  # type: ignore[operator]
            raise SchemaDefinitionError(f"min ({min}) cannot be greater than max ({max})")
        super().__init__(message)
        self.min = min
        self.max = max
        self.min_exclusive = min_exclusive
        self.max_exclusive = max_exclusive
        self.subject = subject

    def test(self, value: AnyType) -> bool:
        if isinstance(value, float) and math.isnan(value):
            return False
        if self.min is not None:
            if self.min_exclusive and not value > self.min:
                return False
            if not self.min_exclusive and not value >= self.min:
                return False
        if self.max is not None:
            if self.max_exclusive and not value < self.max:
                return False
            if not self.max_exclusive and not value <= self.max:
                return False
        return True

    def default_message(self, value: AnyType) -> str:
        if self.min is not None and self.max is not None and not (self.min_exclusive or self.max_exclusive):
            if self.min != self.max and (value < self.min or value > self.max):
                return f"{self.subject} must be between {self.min} and {self.max}"
        if self.min is not None and (value < self.min or (self.min_exclusive and value == self.min)):
            if self.min_exclusive:
                return f"{self.subject} must be greater than {self.min}"
            return f"{self.subject} must be at least {self.min}"
        if self.max_exclusive:
            return f"{self.subject} must be less than {self.max}"
        return f"{self.subject} must be at most {self.max}"


class Length(Constraint):
    """Bounds on ``len(value)`` for strings and collections."""

    def __init__(
        self,
        min: int | None = None,
        max: int | None = None,
        subject: str = "Value",
        unit: str = "items",
        verb: str = "contain",
        message: str | None = None,
    ):
        """Create a length constraint.

        Args:
            min: Minimum length (inclusive)
            max: Maximum length (inclusive)
            subject: Noun used in the default message ("String", "Array", ...)
            unit: Unit used in the default message ("characters", "elements", ...)
            verb: Verb used in the default message ("be", "contain", "have")
            message: Overrides the default failure message
        """
        if min is not None and min < 0:
            raise SchemaDefinitionError(f"min length cannot be negative: {min}")
        if max is not None and max < 0:
            raise SchemaDefinitionError(f"max length cannot be negative: {max}")
        if min is not None and max is not None and min > max:
            raise SchemaDefinitionError(f"min length ({min}) cannot be greater than max ({max})")
        super().__init__(message)
        self.min = min
        self.max = max
        self.subject = subject
        self.unit = unit
        self.verb = verb

    def test(self, value: AnyType) -> bool:
        length = len(value)
        if self.min is not None and length < self.min:
            return False
        if self.max is not None and length > self.max:
            return False
        return True

    def default_message(self, value: AnyType) -> str:
        if self.min is not None and self.min == self.max:
            return f"{self.subject} must {self.verb} exactly {self.min} {self.unit}"
        if self.min is not None and len(value) < self.min:
            return f"{self.subject} must {self.verb} at least {self.min} {self.unit}"
        return f"{self.subject} must {self.verb} at most {self.max} {self.unit}"


class Pattern(Constraint):
    """String searched with a regular expression."""

    def __init__(self, pattern: str | RegexPattern, message: str | None = None):
        """Compile or accept the pattern.

        Args:
            pattern: Regular expression source or a compiled ``re.Pattern``
            message: Overrides the default failure message
        """
        super().__init__(message)
        self.regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        self.pattern_str = self.regex.pattern

    def test(self, value: AnyType) -> bool:
        return self.regex.search(value) is not None

    def default_message(self, value: AnyType) -> str:
        return f"String does not match pattern {self.pattern_str}"


class OneOf(Constraint):
    """Value equal to one of a fixed set of choices."""

    def __init__(self, values: Iterable[AnyType], message: str | None = None):
        values = list(values)
        if not values:
            raise SchemaDefinitionError("OneOf constraint requires at least one allowed value")
        super().__init__(message)
        self.values = values
        self.allowed_str = ", ".join(repr(v) for v in values)

    def test(self, value: AnyType) -> bool:
        return any(value == v and type(value) is type(v) for v in self.values)

    def default_message(self, value: AnyType) -> str:
        return f"Value {value!r} is not in allowed values: {self.allowed_str}"


class MultipleOf(Constraint):
    """Numeric value must be an exact multiple of ``divisor``."""

    def __init__(self, divisor: Number, subject: str = "Number", message: str | None = None):
        if divisor == 0:
            raise SchemaDefinitionError("multiple_of divisor cannot be zero")
        super().__init__(message)
        self.divisor = divisor
        self.subject = subject

    def test(self, value: AnyType) -> bool:
        if isinstance(value, int) and isinstance(self.divisor, int):
            return value % self.divisor == 0
        quotient = value / self.divisor  # type: ignore[operator]
        return math.isclose(quotient, round(quotient), rel_tol=0, abs_tol=1e-9)

    def default_message(self, value: AnyType) -> str:
        return f"{self.subject} must be a multiple of {self.divisor}"


class Contains(Constraint):
    """Collection must contain every one of ``items``."""

    def __init__(self, items: Iterable[AnyType], failure: str, message: str | None = None):
        super().__init__(message)
        self.items = list(items)
        self.failure = failure

    def test(self, value: AnyType) -> bool:
        return all(item in value for item in self.items)

    def default_message(self, value: AnyType) -> str:
        return self.failure


class ContainsValue(Constraint):
    """Mapping must hold ``item`` among its values."""

    def __init__(self, item: AnyType, message: str | None = None):
        super().__init__(message)
        self.item = item

    def test(self, value: AnyType) -> bool:
        return any(v == self.item for v in value.values())

    def default_message(self, value: AnyType) -> str:
        return "Map must contain the specified value"


class ContainsEntries(Constraint):
    """Mapping must hold every ``(key, value)`` pair."""

    def __init__(self, entries: Iterable[tuple[AnyType, AnyType]], message: str | None = None):
        super().__init__(message)
        self.entries = list(entries)

    def test(self, value: AnyType) -> bool:
        return all(k in value and value[k] == v for k, v in self.entries)

    def default_message(self, value: AnyType) -> str:
        return "Map must contain all specified entries"


class Subset(Constraint):
    """Set must be a subset of ``allowed``."""

    def __init__(self, allowed: Iterable[AnyType], message: str | None = None):
        super().__init__(message)
        self.allowed = frozenset(allowed)

    def test(self, value: AnyType) -> bool:
        return set(value) <= self.allowed

    def default_message(self, value: AnyType) -> str:
        return "Set must be a subset of the specified set"


class Superset(Constraint):
    """Set must be a superset of ``required``."""

    def __init__(self, required: Iterable[AnyType], message: str | None = None):
        super().__init__(message)
        self.required = frozenset(required)

    def test(self, value: AnyType) -> bool:
        return set(value) >= self.required

    def default_message(self, value: AnyType) -> str:
        return "Set must be a superset of the specified set"


class Predicate(Constraint):
    """Constraint backed by a plain callable returning bool."""

    def __init__(self, predicate: Callable[[AnyType], bool], message: str):
        """Wrap a predicate as a constraint.

        Args:
            predicate: Callable returning True when the value is acceptable
            message: Error message if validation fails
        """
        super().__init__(message)
        self.predicate = predicate

    def test(self, value: AnyType) -> bool:
        return bool(self.predicate(value))
