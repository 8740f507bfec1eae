"""Schema node model.

A schema node is an immutable description of how to validate and transform
a value. Every node has a ``kind`` (one of ``SchemaKind``), an ordered tuple
of modifiers (constraints, refinements and transforms) and cardinality
settings (optional / nullable / default). Chain methods never mutate the
receiver; they return a copy with the modifier appended:

    ```python
    from dataknobs_schema import string

    base = string()
    username = base.min_length(3).refine(lambda s: s.isalnum(), "Must be alphanumeric")
    base is username
    # False
    len(base.modifiers), len(username.modifiers)
    # (0, 2)
    ```

The executor dispatches on ``kind`` through a table (see ``executor``), so
the classes here only carry data and builder methods.
"""

from __future__ import annotations

import copy
import inspect
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, Iterator, Tuple, Union

from .constraints import Constraint

if TYPE_CHECKING:
    from .config import ValidatorConfig
    from .result import ValidationResult
    from .validator import Validator


class Missing:
    """Type of the absent-marker ``MISSING``.

    ``MISSING`` stands for "no value at all", as opposed to ``None``. Lookups
    of absent object keys produce it, and ``optional()`` nodes accept it.
    """

    _instance: ClassVar[Missing | None] = None

    def __new__(cls) -> Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> Missing:
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> Missing:
        return self

    def __reduce__(self) -> str:
        return "MISSING"


MISSING = Missing()


class SchemaKind(str, Enum):
    """Discriminant of every schema node variant."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    BIGINT = "bigint"
    DATE = "date"
    LITERAL = "literal"
    NULL = "null"
    UNDEFINED = "undefined"
    VOID = "void"
    ANY = "any"
    UNKNOWN = "unknown"
    NEVER = "never"
    CUSTOM = "custom"
    OBJECT = "object"
    INTERFACE = "interface"
    ARRAY = "array"
    TUPLE = "tuple"
    RECORD = "record"
    MAP = "map"
    SET = "set"
    UNION = "union"
    DISCRIMINATED_UNION = "discriminated_union"
    INTERSECTION = "intersection"
    PATTERN = "pattern"
    LAZY = "lazy"


MessageSpec = Union[str, Callable[[Any], str], None]

DEFAULT_REFINEMENT_MESSAGE = "Failed refinement"


@dataclass(frozen=True)
class Refinement:
    """Predicate + message, tagged sync or async when it is declared."""

    predicate: Callable[[Any], Any]
    message: MessageSpec = None
    is_async: bool = False

    def render_message(self, value: Any) -> str:
        if callable(self.message):
            return self.message(value)
        return self.message or DEFAULT_REFINEMENT_MESSAGE


@dataclass(frozen=True)
class Transform:
    """Value mapping step, tagged sync or async when it is declared."""

    fn: Callable[[Any], Any]
    is_async: bool = False


Modifier = Union[Constraint, Refinement, Transform]


def _is_async_callable(fn: Callable[..., Any]) -> bool:
    if inspect.iscoroutinefunction(fn):
        return True
    call = getattr(fn, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


class Schema:
    """Base class of every schema node.

    Attributes:
        modifiers: Constraints, refinements and transforms in declaration order
        accepts_missing: The node accepts the absent-marker (``optional``)
        accepts_null: The node accepts ``None`` (``nullable``)
        default_factory: Produces the substitute for an absent value
        fallback: Produces the output when validation fails (``catch_all``)
        type_message: Overrides the type-mismatch message
    """

    kind: ClassVar[SchemaKind]
    type_name: ClassVar[str] = "value"

    def __init__(self) -> None:
        self._set(
            modifiers=(),
            accepts_missing=False,
            accepts_null=False,
            default_factory=None,
            fallback=None,
            type_message=None,
            _validator=None,
        )

    # -- immutability -------------------------------------------------------

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(
            f"{type(self).__name__} is immutable; chain methods return new schema nodes"
        )

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _set(self, **attrs: Any) -> None:
        self.__dict__.update(attrs)

    def _evolve(self, **changes: Any) -> Schema:
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone.__dict__.update(changes)
        clone.__dict__["_validator"] = None
        return clone

    def _with_modifier(self, modifier: Modifier) -> Schema:
        return self._evolve(modifiers=self.modifiers + (modifier,))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, modifiers={len(self.modifiers)})"

    # -- structure ----------------------------------------------------------

    def children(self) -> Iterator[Schema]:
        """Yield directly nested nodes (used for build-time analysis)."""
        return iter(())

    @property
    def has_default(self) -> bool:
        return self.default_factory is not None

    @property
    def accepts_missing_value(self) -> bool:
        """True when an absent value validates (optional, default, any, ...)."""
        return self.accepts_missing or self.has_default

    @property
    def has_async_modifiers(self) -> bool:
        return any(getattr(m, "is_async", False) for m in self.modifiers)

    # -- generic modifiers --------------------------------------------------

    def refine(
        self,
        predicate: Callable[[Any], Any],
        message: MessageSpec = None,
        *,
        is_async: bool | None = None,
    ) -> Schema:
        """Add a predicate check run after the structural and constraint checks.

        Args:
            predicate: Returns truthy when the value is acceptable; may be a
                coroutine function
            message: Failure message, or a callable building it from the value
            is_async: Force the sync/async tag instead of detecting it

        Returns:
            New schema node
        """
        if is_async is None:
            is_async = _is_async_callable(predicate)
        return self._with_modifier(Refinement(predicate, message, is_async))

    def predicate(
        self,
        predicate: Callable[[Any], Any],
        message: MessageSpec = None,
        *,
        is_async: bool | None = None,
    ) -> Schema:
        """Alias for ``refine``."""
        return self.refine(predicate, message, is_async=is_async)

    def transform(self, fn: Callable[[Any], Any], *, is_async: bool | None = None) -> Schema:
        """Map the validated value; later modifiers and parents see the result.

        Args:
            fn: Mapping function; may be a coroutine function
            is_async: Force the sync/async tag instead of detecting it

        Returns:
            New schema node
        """
        if is_async is None:
            is_async = _is_async_callable(fn)
        return self._with_modifier(Transform(fn, is_async))

    def constrain(self, constraint: Constraint) -> Schema:
        """Attach a ``Constraint`` (including ``&``/``|``/``~`` combinations)."""
        return self._with_modifier(constraint)

    def optional(self) -> Schema:
        """Accept the absent-marker and return it unchanged."""
        return self._evolve(accepts_missing=True)

    def nullable(self) -> Schema:
        """Accept ``None`` and return it unchanged."""
        return self._evolve(accepts_null=True)

    def nullish(self) -> Schema:
        """Accept both ``None`` and the absent-marker."""
        return self._evolve(accepts_missing=True, accepts_null=True)

    def default(self, value: Any) -> Schema:
        """Substitute ``value`` for an absent input; the substitute is validated.

        A callable is treated as a factory and invoked on every substitution;
        other values are deep-copied so mutable defaults are never shared.
        """
        if callable(value):
            factory = value
        else:
            def factory() -> Any:
                return copy.deepcopy(value)
        return self._evolve(default_factory=factory)

    def catch_all(self, fallback: Any) -> Schema:
        """Return ``fallback`` instead of failing.

        A callable fallback receives the ``ValidationError`` and returns the
        replacement value.
        """
        if callable(fallback):
            handler = fallback
        else:
            def handler(error: Any) -> Any:
                return copy.deepcopy(fallback)
        return self._evolve(fallback=handler)

    def error(self, message: str) -> Schema:
        """Override the message used when the value has the wrong type."""
        return self._evolve(type_message=message)

    def describe(self, description: str) -> Schema:
        """Record a description for this node in the global registry."""
        from .registry import describe

        return describe(self, description)

    def meta(self, **metadata: Any) -> Schema:
        """Merge metadata for this node into the global registry."""
        from .registry import set_metadata

        return set_metadata(self, metadata)

    # -- compilation --------------------------------------------------------

    def to_validator(self, config: ValidatorConfig | None = None) -> Validator:
        """Compile this node into a reusable ``Validator``."""
        from .validator import Validator

        return Validator(self, config=config)

    def _default_validator(self) -> Validator:
        validator = self.__dict__.get("_validator")
        if validator is None:
            with _VALIDATOR_CACHE_LOCK:
                validator = self.__dict__.get("_validator")
                if validator is None:
                    validator = self.to_validator()
                    self.__dict__["_validator"] = validator
        return validator

    def parse(self, value: Any) -> Any:
        """Shortcut for ``to_validator().parse(value)``."""
        return self._default_validator().parse(value)

    def safe_parse(self, value: Any) -> ValidationResult:
        """Shortcut for ``to_validator().safe_parse(value)``."""
        return self._default_validator().safe_parse(value)

    async def validate_async(self, value: Any) -> ValidationResult:
        """Shortcut for ``to_validator().validate_async(value)``."""
        return await self._default_validator().validate_async(value)

    async def parse_async(self, value: Any) -> Any:
        """Shortcut for ``to_validator().parse_async(value)``."""
        return await self._default_validator().parse_async(value)


_VALIDATOR_CACHE_LOCK = threading.Lock()


def ensure_schema(node: Any, where: str) -> Schema:
    """Reject non-schema children at build time."""
    from .exceptions import SchemaDefinitionError

    if not isinstance(node, Schema):
        raise SchemaDefinitionError(
            f"{where} expects schema nodes, got {type(node).__name__}",
            context={"where": where},
        )
    return node


def ensure_schemas(nodes: Any, where: str) -> Tuple[Schema, ...]:
    return tuple(ensure_schema(node, where) for node in nodes)
