"""Schema metadata registry.

Associates metadata (title, description, examples, ...) with schema nodes.
Entries are keyed by node identity, so two structurally equal schemas are
distinct entries.

Example:
    ```python
    from dataknobs_schema import string
    from dataknobs_schema.registry import SchemaRegistry

    registry = SchemaRegistry("api")
    email = registry.add(string().email(), {"title": "Email", "examples": ["a@b.co"]})
    registry.get(email)["title"]
    # 'Email'
    ```
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Tuple, TypeVar

from .exceptions import SchemaError
from .schema import Schema

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Schema)
R = TypeVar("R")

Metadata = Dict[str, Any]


class SchemaNotRegisteredError(SchemaError):
    """Raised by ``SchemaRegistry.require`` for unknown schemas."""

    pass


class SchemaRegistry:
    """Thread-safe mapping from schema nodes to metadata.

    Args:
        name: Name for this registry instance (used in logs and errors)
    """

    def __init__(self, name: str = "schemas"):
        self._name = name
        self._items: Dict[int, Tuple[Schema, Metadata]] = {}
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    def add(self, schema: S, metadata: Metadata) -> S:
        """Associate ``metadata`` with ``schema`` (replacing any previous entry).

        Returns:
            The schema itself, so calls can be chained inline
        """
        if not isinstance(schema, Schema):
            raise SchemaError(
                f"Only schema nodes can be registered, got {type(schema).__name__}",
                context={"registry": self._name},
            )
        with self._lock:
            self._items[id(schema)] = (schema, dict(metadata))
        logger.debug("Registered %s schema in %s", schema.kind.value, self._name)
        return schema

    def update(self, schema: S, metadata: Metadata) -> S:
        """Merge ``metadata`` into the existing entry for ``schema``."""
        with self._lock:
            merged = dict(self.get(schema) or {})
            merged.update(metadata)
            return self.add(schema, merged)

    def has(self, schema: Schema) -> bool:
        with self._lock:
            return id(schema) in self._items

    def get(self, schema: Schema) -> Metadata | None:
        """Metadata for ``schema``, or None when it is not registered."""
        with self._lock:
            entry = self._items.get(id(schema))
            return None if entry is None else entry[1]

    def require(self, schema: Schema) -> Metadata:
        """Like ``get`` but raises ``SchemaNotRegisteredError`` when absent."""
        metadata = self.get(schema)
        if metadata is None:
            raise SchemaNotRegisteredError(
                f"Schema not registered in {self._name}",
                context={"registry": self._name, "kind": schema.kind.value},
            )
        return metadata

    def remove(self, schema: Schema) -> bool:
        """Remove ``schema``; returns whether it was registered."""
        with self._lock:
            return self._items.pop(id(schema), None) is not None

    def all_schemas(self) -> List[Schema]:
        with self._lock:
            return [schema for schema, _ in self._items.values()]

    def all_metadata(self) -> List[Metadata]:
        with self._lock:
            return [metadata for _, metadata in self._items.values()]

    def items(self) -> List[Tuple[Schema, Metadata]]:
        """All ``(schema, metadata)`` pairs in registration order."""
        with self._lock:
            return list(self._items.values())

    def find(self, predicate: Callable[[Schema, Metadata], bool]) -> List[Tuple[Schema, Metadata]]:
        return [(schema, metadata) for schema, metadata in self.items() if predicate(schema, metadata)]

    def map(self, mapper: Callable[[Schema, Metadata], R]) -> List[R]:
        return [mapper(schema, metadata) for schema, metadata in self.items()]

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, schema: object) -> bool:
        return isinstance(schema, Schema) and self.has(schema)

    def __iter__(self) -> Iterator[Schema]:
        return iter(self.all_schemas())

    def __repr__(self) -> str:
        return f"SchemaRegistry(name={self._name!r}, count={self.count()})"


global_registry = SchemaRegistry("global")


def register_schema(schema: S, registry: SchemaRegistry, metadata: Metadata) -> S:
    """Register ``schema`` in ``registry`` and return it."""
    return registry.add(schema, metadata)


def set_metadata(schema: S, metadata: Metadata) -> S:
    """Replace the global metadata of ``schema``."""
    return global_registry.add(schema, metadata)


def describe(schema: S, description: str) -> S:
    """Set the ``description`` entry of ``schema`` in the global registry."""
    return global_registry.update(schema, {"description": description})


def get_metadata(schema: Schema) -> Metadata | None:
    return global_registry.get(schema)
