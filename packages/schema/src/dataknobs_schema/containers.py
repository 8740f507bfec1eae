"""Container schema nodes: objects, arrays, tuples, records, maps and sets.

Object keys may be written with a trailing ``?`` to make the key optional
(``{"nickname?": string()}``). A literal trailing question mark is written
``"name\\?"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping, Tuple

from .config import UNKNOWN_KEY_POLICIES
from .constraints import Contains, ContainsEntries, ContainsValue, Length, Subset, Superset
from .exceptions import SchemaDefinitionError
from .schema import Schema, SchemaKind, ensure_schema, ensure_schemas


@dataclass(frozen=True)
class Field:
    """One declared object property."""

    name: str
    schema: Schema
    key_optional: bool = False


def parse_key(raw: str) -> Tuple[str, bool]:
    """Split a declared key into ``(name, key_optional)``."""
    if not isinstance(raw, str):
        raise SchemaDefinitionError(f"Object property names must be strings, got {raw!r}")
    if raw.endswith("\\?"):
        return raw[:-2] + "?", False
    if raw.endswith("?"):
        return raw[:-1], True
    return raw, False


def _parse_fields(properties: Mapping[str, Any], where: str) -> Tuple[Field, ...]:
    if not isinstance(properties, Mapping):
        raise SchemaDefinitionError(f"{where} expects a mapping of property schemas")
    result: Dict[str, Field] = {}
    for raw, node in properties.items():
        name, key_optional = parse_key(raw)
        if name in result:
            raise SchemaDefinitionError(f"Duplicate property {name!r} in {where}")
        result[name] = Field(name, ensure_schema(node, where), key_optional)
    return tuple(result.values())


class ObjectSchema(Schema):
    """Mapping with declared properties.

    A property is key-optional when declared with ``?`` or when its schema
    accepts an absent value (``optional()``, ``default()``, ``any_()``...).
    """

    kind = SchemaKind.OBJECT
    type_name = "object"

    def __init__(self, properties: Mapping[str, Any], unknown_keys: str | None = None) -> None:
        super().__init__()
        self._init_fields(_parse_fields(properties, f"{self.kind.value}()"), unknown_keys)

    def _init_fields(self, fields: Tuple[Field, ...], unknown_keys: str | None) -> None:
        if unknown_keys is not None and unknown_keys not in UNKNOWN_KEY_POLICIES:
            raise SchemaDefinitionError(f"Invalid unknown_keys policy: {unknown_keys!r}")
        self._set(
            fields=fields,
            field_names=frozenset(f.name for f in fields),
            unknown_keys=unknown_keys,
        )

    def _with_fields(self, fields: Iterable[Field]) -> ObjectSchema:
        node = object.__new__(type(self))
        Schema.__init__(node)
        node._init_fields(tuple(fields), self.unknown_keys)
        return node

    def is_key_optional(self, field: Field) -> bool:
        return field.key_optional or field.schema.accepts_missing_value

    @property
    def shape(self) -> Dict[str, Schema]:
        return {f.name: f.schema for f in self.fields}

    def children(self) -> Iterator[Schema]:
        return (f.schema for f in self.fields)

    def strict(self) -> ObjectSchema:
        """Reject undeclared keys."""
        return self._evolve(unknown_keys="strict")

    def strip(self) -> ObjectSchema:
        """Drop undeclared keys from the output."""
        return self._evolve(unknown_keys="strip")

    def passthrough(self) -> ObjectSchema:
        """Copy undeclared keys to the output unvalidated."""
        return self._evolve(unknown_keys="passthrough")

    def extend(self, properties: Mapping[str, Any]) -> ObjectSchema:
        """New node with extra (or replaced) properties.

        Modifiers and cardinality of the receiver are not carried over.
        """
        merged = {f.name: f for f in self.fields}
        for field in _parse_fields(properties, "extend()"):
            merged[field.name] = field
        return self._with_fields(merged.values())

    def pick(self, *names: str) -> ObjectSchema:
        self._check_names(names)
        return self._with_fields(f for f in self.fields if f.name in names)

    def omit(self, *names: str) -> ObjectSchema:
        self._check_names(names)
        return self._with_fields(f for f in self.fields if f.name not in names)

    def partial(self) -> ObjectSchema:
        """Every property becomes key-optional."""
        return self._with_fields(Field(f.name, f.schema, True) for f in self.fields)

    def _check_names(self, names: Iterable[str]) -> None:
        unknown = [n for n in names if n not in self.field_names]
        if unknown:
            raise SchemaDefinitionError(f"Unknown properties: {', '.join(unknown)}")


class InterfaceSchema(ObjectSchema):
    """Object whose key optionality is independent of value optionality.

    ``{"a?": string()}`` means the key may be absent but, when present, must
    hold a string. ``{"a": string().optional()}`` means the key must be
    present but its value may be the absent-marker.
    """

    kind = SchemaKind.INTERFACE

    def is_key_optional(self, field: Field) -> bool:
        return field.key_optional


class ArraySchema(Schema):
    """Homogeneous ``list``/``tuple`` input; the output is a ``list``."""

    kind = SchemaKind.ARRAY
    type_name = "array"

    def __init__(self, element: Schema) -> None:
        super().__init__()
        self._set(element=ensure_schema(element, "array()"))

    def children(self) -> Iterator[Schema]:
        yield self.element

    def _length(self, message: str | None, **bounds: Any) -> ArraySchema:
        return self.constrain(Length(subject="Array", unit="elements", message=message, **bounds))

    def min_length(self, min: int, message: str | None = None) -> ArraySchema:
        return self._length(message, min=min)

    def max_length(self, max: int, message: str | None = None) -> ArraySchema:
        return self._length(message, max=max)

    def length(self, length: int, message: str | None = None) -> ArraySchema:
        return self._length(message, min=length, max=length)

    def non_empty(self, message: str | None = None) -> ArraySchema:
        return self._length(message or "Array must not be empty", min=1)


class TupleSchema(Schema):
    """Fixed positions, optionally followed by a homogeneous rest."""

    kind = SchemaKind.TUPLE
    type_name = "tuple"

    def __init__(self, items: Iterable[Schema], rest: Schema | None = None) -> None:
        super().__init__()
        self._set(
            items=ensure_schemas(items, "tuple_()"),
            rest_schema=None if rest is None else ensure_schema(rest, "tuple_()"),
        )

    def children(self) -> Iterator[Schema]:
        yield from self.items
        if self.rest_schema is not None:
            yield self.rest_schema

    def rest(self, schema: Schema) -> TupleSchema:
        """Allow any number of trailing elements matching ``schema``."""
        return self._evolve(rest_schema=ensure_schema(schema, "rest()"))


class _SizedMixin:
    """Size bounds shared by record, map and set nodes."""

    subject = "Map"
    unit = "entries"
    verb = "contain"

    def _size(self, message: str | None, **bounds: Any):
        return self.constrain(Length(subject=self.subject, unit=self.unit, verb=self.verb, message=message, **bounds))

    def min_size(self, min: int, message: str | None = None):
        return self._size(message, min=min)

    def max_size(self, max: int, message: str | None = None):
        return self._size(message, max=max)

    def size(self, size: int, message: str | None = None):
        return self._size(message, min=size, max=size)


class RecordSchema(_SizedMixin, Schema):
    """Mapping with uniformly typed keys and values; the output is a ``dict``."""

    kind = SchemaKind.RECORD
    type_name = "record"
    subject = "Record"
    verb = "have"

    def __init__(self, key: Schema, value: Schema) -> None:
        super().__init__()
        self._set(key=ensure_schema(key, f"{self.kind.value}()"), value=ensure_schema(value, f"{self.kind.value}()"))

    def children(self) -> Iterator[Schema]:
        yield self.key
        yield self.value


class MapSchema(RecordSchema):
    """Like a record, plus membership checks on keys, values and entries."""

    kind = SchemaKind.MAP
    type_name = "map"
    subject = "Map"
    verb = "contain"

    def non_empty(self, message: str | None = None) -> MapSchema:
        return self._size(message or "Map must not be empty", min=1)

    def has_key(self, key: Any, message: str | None = None) -> MapSchema:
        return self.constrain(Contains([key], "Map must contain the specified key", message))

    def has_value(self, value: Any, message: str | None = None) -> MapSchema:
        return self.constrain(ContainsValue(value, message))

    def entries(self, entries: Iterable[Tuple[Any, Any]], message: str | None = None) -> MapSchema:
        return self.constrain(ContainsEntries(entries, message))


class SetSchema(_SizedMixin, Schema):
    """``set``/``frozenset`` input; the output keeps the input's set type."""

    kind = SchemaKind.SET
    type_name = "set"
    subject = "Set"
    unit = "elements"

    def __init__(self, element: Schema) -> None:
        super().__init__()
        self._set(element=ensure_schema(element, "set_()"))

    def children(self) -> Iterator[Schema]:
        yield self.element

    def non_empty(self, message: str | None = None) -> SetSchema:
        return self._size(message or "Set must not be empty", min=1)

    def has(self, value: Any, message: str | None = None) -> SetSchema:
        return self.constrain(Contains([value], "Set must contain the specified value", message))

    def subset(self, allowed: Iterable[Any], message: str | None = None) -> SetSchema:
        return self.constrain(Subset(allowed, message))

    def superset(self, required: Iterable[Any], message: str | None = None) -> SetSchema:
        return self.constrain(Superset(required, message))


def object_(properties: Mapping[str, Any], unknown_keys: str | None = None) -> ObjectSchema:
    return ObjectSchema(properties, unknown_keys)


def interface_(properties: Mapping[str, Any], unknown_keys: str | None = None) -> InterfaceSchema:
    return InterfaceSchema(properties, unknown_keys)


def array(element: Schema) -> ArraySchema:
    return ArraySchema(element)


def tuple_(*items: Schema, rest: Schema | None = None) -> TupleSchema:
    """Tuple schema; accepts ``tuple_(a, b)`` or ``tuple_([a, b])``."""
    if len(items) == 1 and isinstance(items[0], (list, tuple)):
        items = tuple(items[0])
    return TupleSchema(items, rest)


def record(key: Schema, value: Schema | None = None) -> RecordSchema:
    """``record(value)`` uses string keys; ``record(key, value)`` validates both."""
    if value is None:
        from .primitives import string

        key, value = string(), key
    return RecordSchema(key, value)


def map_(key: Schema, value: Schema) -> MapSchema:
    return MapSchema(key, value)


def set_(element: Schema) -> SetSchema:
    return SetSchema(element)
