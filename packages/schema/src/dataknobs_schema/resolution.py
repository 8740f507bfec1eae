"""Build-time resolution of schema trees.

Covers unwrapping ``lazy`` references, building discriminated union dispatch
tables and the whole-tree analysis a ``Validator`` performs when it is
compiled (definition checks plus async tagging).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Set, Tuple

from .composites import DiscriminatedUnionSchema, LazySchema
from .containers import ObjectSchema
from .exceptions import SchemaDefinitionError
from .primitives import CustomSchema, LiteralSchema
from .schema import Schema

logger = logging.getLogger(__name__)


def resolve(node: Schema) -> Schema:
    """Follow ``lazy`` references until a concrete node is reached."""
    seen: Set[int] = set()
    while isinstance(node, LazySchema):
        if id(node) in seen:
            raise SchemaDefinitionError("lazy() reference resolves to itself without a concrete schema")
        seen.add(id(node))
        node = node.resolve()
    return node


def tag_key(value: Any) -> Tuple[type, Any] | None:
    """Dispatch-table key for a discriminator value (None when unhashable)."""
    key = (type(value), value)
    try:
        hash(key)
    except TypeError:
        return None
    return key


def build_discriminator_table(discriminator: str, members: Iterable[Schema]) -> Dict[Tuple[type, Any], Schema]:
    """Map each member's literal tag value to the member.

    Raises:
        SchemaDefinitionError: A member is not an object schema, lacks a
            literal ``discriminator`` property, or repeats a tag value
    """
    table: Dict[Tuple[type, Any], Schema] = {}
    for index, member in enumerate(members):
        target = resolve(member)
        if not isinstance(target, ObjectSchema):
            raise SchemaDefinitionError(
                f"All members of a discriminated union must be object schemas, "
                f"but member {index} is {target.kind.value}",
                context={"discriminator": discriminator, "member": index},
            )
        field = next((f for f in target.fields if f.name == discriminator), None)
        tag_schema = resolve(field.schema) if field is not None else None
        if not isinstance(tag_schema, LiteralSchema):
            raise SchemaDefinitionError(
                f"Member {index} of the discriminated union needs a literal {discriminator!r} property",
                context={"discriminator": discriminator, "member": index},
            )
        key = tag_key(tag_schema.value)
        if key is None:
            raise SchemaDefinitionError(f"Discriminator value {tag_schema.value!r} is not hashable")
        if key in table:
            raise SchemaDefinitionError(
                f"Duplicate discriminator value {tag_schema.value!r}",
                context={"discriminator": discriminator, "value": tag_schema.value},
            )
        table[key] = member
    return table


@dataclass(frozen=True)
class SchemaAnalysis:
    """Result of walking a schema tree once at compile time."""

    requires_async: bool
    node_count: int
    async_nodes: Tuple[str, ...] = ()


def analyze(schema: Schema) -> SchemaAnalysis:
    """Walk the whole tree, resolving lazies and checking definitions.

    A node is async when any of its refinements or transforms, or a custom
    check, was declared async. Recursive references are visited once.
    """
    seen: Set[int] = set()
    stack: List[Schema] = [schema]
    async_nodes: List[str] = []
    count = 0
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        count += 1
        if node.has_async_modifiers or (isinstance(node, CustomSchema) and node.check_is_async):
            async_nodes.append(node.kind.value)
        if isinstance(node, LazySchema):
            resolve(node)
        elif isinstance(node, DiscriminatedUnionSchema):
            _ = node.dispatch_table
        stack.extend(node.children())

    analysis = SchemaAnalysis(
        requires_async=bool(async_nodes),
        node_count=count,
        async_nodes=tuple(async_nodes),
    )
    logger.debug(
        "Analyzed %s schema: %d nodes, async=%s",
        schema.kind.value, analysis.node_count, analysis.requires_async,
    )
    return analysis


def requires_async(schema: Schema) -> bool:
    return analyze(schema).requires_async
