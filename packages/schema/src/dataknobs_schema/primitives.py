"""Leaf schema nodes: strings, numbers, literals and the other scalar kinds."""

from __future__ import annotations

import datetime as _dt
import math
from typing import Any, Callable

from . import formats
from .constraints import Length, MultipleOf, Pattern, Predicate, Range
from .exceptions import SchemaDefinitionError
from .schema import Schema, SchemaKind, _is_async_callable

MAX_SAFE_INTEGER = 2**53 - 1


class StringSchema(Schema):
    """``str`` values."""

    kind = SchemaKind.STRING
    type_name = "string"

    def _length(self, message: str | None, **bounds: Any) -> StringSchema:
        return self.constrain(Length(subject="String", unit="characters", verb="be", message=message, **bounds))

    def min_length(self, min: int, message: str | None = None) -> StringSchema:
        return self._length(message, min=min)

    def max_length(self, max: int, message: str | None = None) -> StringSchema:
        return self._length(message, max=max)

    def length(self, length: int, message: str | None = None) -> StringSchema:
        return self._length(message, min=length, max=length)

    def non_empty(self, message: str | None = None) -> StringSchema:
        return self.constrain(Length(min=1, message=message or "String must not be empty"))

    def regex(self, pattern: Any, message: str | None = None) -> StringSchema:
        return self.constrain(Pattern(pattern, message))

    def email(self, message: str | None = None) -> StringSchema:
        return self.regex(formats.EMAIL, message or "Invalid email address")

    def url(self, message: str | None = None) -> StringSchema:
        return self.regex(formats.URL, message or "Invalid URL")

    def uuid(self, message: str | None = None) -> StringSchema:
        return self.regex(formats.UUID, message or "Invalid UUID")

    def cuid(self, message: str | None = None) -> StringSchema:
        return self.regex(formats.CUID, message or "Invalid CUID")

    def cuid2(self, message: str | None = None) -> StringSchema:
        return self.regex(formats.CUID2, message or "Invalid CUID2")

    def ulid(self, message: str | None = None) -> StringSchema:
        return self.regex(formats.ULID, message or "Invalid ULID")

    def nanoid(self, message: str | None = None) -> StringSchema:
        return self.regex(formats.NANOID, message or "Invalid nanoid")

    def starts_with(self, prefix: str, message: str | None = None) -> StringSchema:
        return self.constrain(
            Predicate(lambda s: s.startswith(prefix), message or f'String must start with "{prefix}"')
        )

    def ends_with(self, suffix: str, message: str | None = None) -> StringSchema:
        return self.constrain(
            Predicate(lambda s: s.endswith(suffix), message or f'String must end with "{suffix}"')
        )

    def includes(self, substring: str, message: str | None = None) -> StringSchema:
        return self.constrain(
            Predicate(lambda s: substring in s, message or f'String must include "{substring}"')
        )

    def datetime(
        self,
        offset: bool = False,
        local: bool = False,
        precision: int | None = None,
        message: str | None = None,
    ) -> StringSchema:
        """ISO 8601 datetime string.

        Args:
            offset: Also accept numeric timezone offsets (``+02:00``)
            local: Require the timezone designator to be absent
            precision: Exact number of fractional second digits
            message: Overrides the failure message
        """
        if offset and local:
            raise SchemaDefinitionError("datetime() cannot combine offset=True and local=True")

        def check(value: str) -> bool:
            return formats.is_valid_datetime(value, offset=offset, local=local, precision=precision)

        return self.constrain(Predicate(check, message or "Invalid datetime string"))

    def date(self, message: str | None = None) -> StringSchema:
        return self.constrain(Predicate(formats.is_valid_date, message or "Invalid date string"))

    def time(self, precision: int | None = None, message: str | None = None) -> StringSchema:
        return self.constrain(
            Predicate(lambda s: formats.is_valid_time(s, precision), message or "Invalid time string")
        )

    def duration(self, message: str | None = None) -> StringSchema:
        return self.regex(formats.DURATION, message or "Invalid ISO 8601 duration")

    def ip(self, version: str | None = None, message: str | None = None) -> StringSchema:
        _check_ip_version(version)
        default = {"v4": "Invalid IPv4 address", "v6": "Invalid IPv6 address"}.get(version or "", "Invalid IP address")
        return self.constrain(Predicate(lambda s: formats.is_valid_ip(s, version), message or default))

    def cidr(self, version: str | None = None, message: str | None = None) -> StringSchema:
        _check_ip_version(version)
        default = {"v4": "Invalid IPv4 CIDR notation", "v6": "Invalid IPv6 CIDR notation"}.get(
            version or "", "Invalid CIDR notation"
        )
        return self.constrain(Predicate(lambda s: formats.is_valid_cidr(s, version), message or default))

    def base64(self, padding: bool = True, url_safe: bool = False, message: str | None = None) -> StringSchema:
        return self.constrain(
            Predicate(
                lambda s: formats.is_valid_base64(s, padding=padding, url_safe=url_safe),
                message or "Invalid base64 string",
            )
        )

    def trim(self) -> StringSchema:
        return self.transform(str.strip)

    def to_lower(self) -> StringSchema:
        return self.transform(str.lower)

    def to_upper(self) -> StringSchema:
        return self.transform(str.upper)


def _check_ip_version(version: str | None) -> None:
    if version not in (None, "v4", "v6"):
        raise SchemaDefinitionError(f"IP version must be 'v4' or 'v6', got {version!r}")


class _OrderedMixin:
    """Shared numeric bounds for number and bigint nodes."""

    subject = "Number"

    def min(self, min: Any, message: str | None = None):
        return self.constrain(Range(min=min, subject=self.subject, message=message))

    def max(self, max: Any, message: str | None = None):
        return self.constrain(Range(max=max, subject=self.subject, message=message))

    def gt(self, bound: Any, message: str | None = None):
        return self.constrain(Range(min=bound, min_exclusive=True, subject=self.subject, message=message))

    def lt(self, bound: Any, message: str | None = None):
        return self.constrain(Range(max=bound, max_exclusive=True, subject=self.subject, message=message))

    def positive(self, message: str | None = None):
        return self.constrain(Predicate(lambda n: n > 0, message or f"{self.subject} must be positive"))

    def negative(self, message: str | None = None):
        return self.constrain(Predicate(lambda n: n < 0, message or f"{self.subject} must be negative"))

    def non_negative(self, message: str | None = None):
        return self.constrain(Predicate(lambda n: n >= 0, message or f"{self.subject} must be non-negative"))

    def non_positive(self, message: str | None = None):
        return self.constrain(Predicate(lambda n: n <= 0, message or f"{self.subject} must be non-positive"))

    def multiple_of(self, divisor: Any, message: str | None = None):
        return self.constrain(MultipleOf(divisor, subject=self.subject, message=message))


class NumberSchema(_OrderedMixin, Schema):
    """``int``/``float`` values; ``bool`` and NaN are rejected."""

    kind = SchemaKind.NUMBER
    type_name = "number"

    def integer(self, message: str | None = None) -> NumberSchema:
        return self.constrain(Predicate(_is_integral, message or "Number must be an integer"))

    def finite(self, message: str | None = None) -> NumberSchema:
        return self.constrain(Predicate(math.isfinite, message or "Number must be finite"))

    def safe(self, message: str | None = None) -> NumberSchema:
        """Integers must lie within +/-(2**53 - 1); non-integral values must be finite."""
        return self.constrain(Predicate(_is_safe_number, message or "Number must be a safe number"))

    def step(self, step: Any, message: str | None = None) -> NumberSchema:
        return self.multiple_of(step, message or f"Number must be a multiple of {step}")

    def port(self, message: str | None = None) -> NumberSchema:
        return (
            self.integer(message or "Port must be an integer")
            .min(1, message or "Port must be at least 1")
            .max(65535, message or "Port must be at most 65535")
        )


def _is_integral(value: Any) -> bool:
    return isinstance(value, int) or (math.isfinite(value) and float(value).is_integer())


def _is_safe_number(value: Any) -> bool:
    if _is_integral(value):
        return abs(value) <= MAX_SAFE_INTEGER
    return math.isfinite(value)


class BigIntSchema(_OrderedMixin, Schema):
    """Arbitrary precision ``int`` values (``bool`` is rejected)."""

    kind = SchemaKind.BIGINT
    type_name = "bigint"
    subject = "BigInt"

    def __init__(self) -> None:
        super().__init__()
        self._set(coerce_strings=False)

    def between(self, min: int, max: int, message: str | None = None) -> BigIntSchema:
        return self.constrain(
            Range(min=min, max=max, subject=self.subject, message=message or f"BigInt must be between {min} and {max}")
        )

    def from_string(self) -> BigIntSchema:
        """Accept decimal strings and convert them to ``int`` before checking."""
        return self._evolve(coerce_strings=True)


class BooleanSchema(Schema):
    kind = SchemaKind.BOOLEAN
    type_name = "boolean"


class DateSchema(Schema):
    """``datetime.date``/``datetime.datetime`` instances."""

    kind = SchemaKind.DATE
    type_name = "date"

    def min(self, min: Any, message: str | None = None) -> DateSchema:
        bound = _as_date(min)
        return self.constrain(
            Predicate(lambda d: _compare_dates(d, bound) >= 0, message or f"Date must be at or after {bound.isoformat()}")
        )

    def max(self, max: Any, message: str | None = None) -> DateSchema:
        bound = _as_date(max)
        return self.constrain(
            Predicate(lambda d: _compare_dates(d, bound) <= 0, message or f"Date must be at or before {bound.isoformat()}")
        )

    def future(self, message: str | None = None) -> DateSchema:
        return self.constrain(Predicate(lambda d: _compare_dates(d, _now_like(d)) > 0, message or "Date must be in the future"))

    def past(self, message: str | None = None) -> DateSchema:
        return self.constrain(Predicate(lambda d: _compare_dates(d, _now_like(d)) < 0, message or "Date must be in the past"))

    def format(self, formatter: Callable[[_dt.date], str] | str = "iso") -> DateSchema:
        """Transform the validated date to text (``"iso"`` or a strftime pattern or a callable)."""
        if callable(formatter):
            return self.transform(formatter)
        if formatter == "iso":
            return self.transform(lambda d: d.isoformat())
        return self.transform(lambda d: d.strftime(formatter))


def _as_date(value: Any) -> _dt.date:
    if isinstance(value, _dt.date):
        return value
    if isinstance(value, str):
        try:
            return _dt.datetime.fromisoformat(value)
        except ValueError as e:
            raise SchemaDefinitionError(f"Invalid date bound: {value!r}") from e
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _dt.datetime.fromtimestamp(value, tz=_dt.timezone.utc)
    raise SchemaDefinitionError(f"Invalid date bound: {value!r}")


def _now_like(value: _dt.date) -> _dt.date:
    if isinstance(value, _dt.datetime):
        return _dt.datetime.now(value.tzinfo)
    return _dt.date.today()


def _compare_dates(left: _dt.date, right: _dt.date) -> int:
    """Three-way compare, aligning date/datetime and naive/aware operands."""
    if isinstance(left, _dt.datetime) != isinstance(right, _dt.datetime):
        left = left.date() if isinstance(left, _dt.datetime) else left
        right = right.date() if isinstance(right, _dt.datetime) else right
    elif isinstance(left, _dt.datetime) and (left.tzinfo is None) != (right.tzinfo is None):  # type: ignore[union-attr]
        left = left.replace(tzinfo=None)  # type: ignore[union-attr]
        right = right.replace(tzinfo=None)  # type: ignore[union-attr]
    return (left > right) - (left < right)  # type: ignore[operator]


class LiteralSchema(Schema):
    """Exactly one value (compared by type and equality)."""

    kind = SchemaKind.LITERAL
    type_name = "literal"

    def __init__(self, value: Any) -> None:
        super().__init__()
        self._set(value=value)

    def __repr__(self) -> str:
        return f"LiteralSchema({self.value!r})"


class NullSchema(Schema):
    kind = SchemaKind.NULL
    type_name = "null"


class UndefinedSchema(Schema):
    """Only the absent-marker."""

    kind = SchemaKind.UNDEFINED
    type_name = "undefined"

    @property
    def accepts_missing_value(self) -> bool:
        return True


class VoidSchema(UndefinedSchema):
    """Absent-marker or ``None``; the output is always the absent-marker."""

    kind = SchemaKind.VOID
    type_name = "void"


class AnySchema(Schema):
    kind = SchemaKind.ANY
    type_name = "any"

    @property
    def accepts_missing_value(self) -> bool:
        return True


class UnknownSchema(AnySchema):
    kind = SchemaKind.UNKNOWN
    type_name = "unknown"


class NeverSchema(Schema):
    kind = SchemaKind.NEVER
    type_name = "never"


class CustomSchema(Schema):
    """Structural check supplied as a predicate (sync or async)."""

    kind = SchemaKind.CUSTOM
    type_name = "custom"

    def __init__(self, check: Callable[[Any], Any], message: str | None = None, is_async: bool | None = None) -> None:
        if not callable(check):
            raise SchemaDefinitionError("custom() expects a callable check")
        super().__init__()
        self._set(
            check=check,
            message=message or "Custom validation failed",
            check_is_async=_is_async_callable(check) if is_async is None else is_async,
        )


def string() -> StringSchema:
    return StringSchema()


def number() -> NumberSchema:
    return NumberSchema()


def bigint() -> BigIntSchema:
    return BigIntSchema()


def boolean() -> BooleanSchema:
    return BooleanSchema()


def date() -> DateSchema:
    return DateSchema()


def literal(value: Any) -> LiteralSchema:
    return LiteralSchema(value)


def null() -> NullSchema:
    return NullSchema()


none = null


def undefined() -> UndefinedSchema:
    return UndefinedSchema()


def void() -> VoidSchema:
    return VoidSchema()


def any_() -> AnySchema:
    return AnySchema()


def unknown() -> UnknownSchema:
    return UnknownSchema()


def never() -> NeverSchema:
    return NeverSchema()


def custom(check: Callable[[Any], Any], message: str | None = None, *, is_async: bool | None = None) -> CustomSchema:
    """Schema whose structural check is ``check(value)`` returning truthy.

    Args:
        check: Predicate (may be a coroutine function)
        message: Failure message
        is_async: Force the sync/async tag instead of detecting it
    """
    return CustomSchema(check, message, is_async)
