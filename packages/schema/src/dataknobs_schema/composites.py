"""Composite schema nodes: unions, intersections, pattern dispatch and lazy references."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, Tuple

from .exceptions import SchemaDefinitionError
from .schema import Schema, SchemaKind, ensure_schema, ensure_schemas

logger = logging.getLogger(__name__)


def _members(members: Tuple[Any, ...], where: str) -> Tuple[Schema, ...]:
    if len(members) == 1 and isinstance(members[0], (list, tuple)):
        members = tuple(members[0])
    if not members:
        raise SchemaDefinitionError(f"{where} requires at least one member schema")
    return ensure_schemas(members, where)


class UnionSchema(Schema):
    """First member (in declaration order) that accepts the value wins."""

    kind = SchemaKind.UNION
    type_name = "union"

    def __init__(self, members: Iterable[Schema]) -> None:
        super().__init__()
        self._set(members=tuple(members))

    def children(self) -> Iterator[Schema]:
        return iter(self.members)

    @property
    def accepts_missing_value(self) -> bool:
        return super().accepts_missing_value or any(m.accepts_missing_value for m in self.members)


class DiscriminatedUnionSchema(Schema):
    """Object members selected by the literal value of a tag property.

    The dispatch table is built once. When every member is a concrete object
    it is built immediately, so definition errors (non-object members,
    missing or duplicate tags) surface at construction; members behind
    ``lazy`` are checked when the schema is compiled.
    """

    kind = SchemaKind.DISCRIMINATED_UNION
    type_name = "object"

    def __init__(self, discriminator: str, members: Iterable[Schema]) -> None:
        if not isinstance(discriminator, str) or not discriminator:
            raise SchemaDefinitionError("discriminated_union() requires a discriminator property name")
        super().__init__()
        self._set(discriminator=discriminator, members=tuple(members), _table=None, _table_lock=threading.Lock())
        if not any(isinstance(m, LazySchema) for m in self.members):
            _ = self.dispatch_table

    def children(self) -> Iterator[Schema]:
        return iter(self.members)

    @property
    def dispatch_table(self) -> Dict[Tuple[type, Any], Schema]:
        table = self.__dict__["_table"]
        if table is None:
            from .resolution import build_discriminator_table

            with self.__dict__["_table_lock"]:
                table = self.__dict__["_table"]
                if table is None:
                    table = build_discriminator_table(self.discriminator, self.members)
                    self.__dict__["_table"] = table
        return table

    def lookup(self, tag: Any) -> Schema | None:
        """Member schema declared for ``tag``, or None."""
        from .resolution import tag_key

        key = tag_key(tag)
        if key is None:
            return None
        return self.dispatch_table.get(key)

    @property
    def tag_values(self) -> Tuple[Any, ...]:
        return tuple(value for _, value in self.dispatch_table)


class IntersectionSchema(Schema):
    """Every member must accept the value; object outputs are deep-merged."""

    kind = SchemaKind.INTERSECTION
    type_name = "intersection"

    def __init__(self, members: Iterable[Schema]) -> None:
        super().__init__()
        self._set(members=tuple(members))

    def children(self) -> Iterator[Schema]:
        return iter(self.members)


@dataclass(frozen=True)
class Invalid:
    """Returned by a pattern dispatcher to reject the input with ``message``."""

    message: str


def invalid(message: str) -> Invalid:
    return Invalid(message)


class PatternSchema(Schema):
    """Picks the schema to apply by inspecting the input.

    The dispatcher returns a schema node or ``invalid(message)``. Targets are
    only known at validation time, so their async tagging is checked when
    they run.
    """

    kind = SchemaKind.PATTERN
    type_name = "pattern"

    def __init__(self, dispatch: Callable[[Any], Any]) -> None:
        if not callable(dispatch):
            raise SchemaDefinitionError("pattern() expects a callable dispatcher")
        super().__init__()
        self._set(dispatch=dispatch)


class LazySchema(Schema):
    """Deferred reference to a schema, used for recursive definitions.

    ```python
    category = lazy(lambda: object_({"name": string(), "children": array(category)}))
    ```

    The thunk runs at most once per node; its result is memoized.
    """

    kind = SchemaKind.LAZY
    type_name = "lazy"

    def __init__(self, thunk: Callable[[], Schema]) -> None:
        if not callable(thunk):
            raise SchemaDefinitionError("lazy() expects a callable returning a schema")
        super().__init__()
        self._set(thunk=thunk, _state={"target": None}, _lock=threading.Lock())

    def resolve(self) -> Schema:
        """Run the thunk (once) and return the referenced schema."""
        state = self.__dict__["_state"]
        target = state["target"]
        if target is None:
            with self.__dict__["_lock"]:
                target = state["target"]
                if target is None:
                    try:
                        target = self.thunk()
                    except Exception as e:
                        raise SchemaDefinitionError(f"lazy() thunk failed: {e}") from e
                    target = ensure_schema(target, "lazy()")
                    logger.debug("Resolved lazy schema to %s", target.kind.value)
                    state["target"] = target
        return target

    def children(self) -> Iterator[Schema]:
        yield self.resolve()


def union(*members: Schema) -> UnionSchema:
    """Union of ``members``; accepts ``union(a, b)`` or ``union([a, b])``."""
    return UnionSchema(_members(members, "union()"))


def one_of(*members: Schema) -> UnionSchema:
    """Alias for ``union``."""
    return union(*members)


def discriminated_union(discriminator: str, *members: Schema) -> DiscriminatedUnionSchema:
    return DiscriminatedUnionSchema(discriminator, _members(members, "discriminated_union()"))


def intersection(*members: Schema) -> IntersectionSchema:
    return IntersectionSchema(_members(members, "intersection()"))


def pattern(dispatch: Callable[[Any], Any]) -> PatternSchema:
    return PatternSchema(dispatch)


def lazy(thunk: Callable[[], Schema]) -> LazySchema:
    return LazySchema(thunk)
