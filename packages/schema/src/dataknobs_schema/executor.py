"""Schema execution engine.

Every node kind has a checker registered in a dispatch table. Checkers are
coroutine functions so that a single code path serves both entry points:

- asynchronous validation awaits the checker tree normally;
- synchronous validation drives the same coroutine with ``run_sync``, which
  succeeds as long as nothing suspends. Async-tagged refinements, transforms
  and custom checks raise ``AsyncRequiredError`` before they are invoked
  when the context does not allow async work.

Per node, ``execute`` applies in order: absent/null handling (including
default substitution), the structural checker, the modifiers in declaration
order, and finally the ``catch_all`` fallback.
"""

from __future__ import annotations

import datetime as _dt
import inspect
import logging
import math
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Coroutine, Dict, List, Sequence, Tuple

from .composites import Invalid, LazySchema
from .constraints import Constraint
from .containers import ObjectSchema
from .exceptions import (
    AggregateError,
    AsyncRequiredError,
    ErrorKind,
    PathSegment,
    SchemaDefinitionError,
    ValidationError,
    format_path,
)
from .resolution import resolve
from .result import ExecutionContext
from .schema import DEFAULT_REFINEMENT_MESSAGE, MISSING, Refinement, Schema, SchemaKind, Transform

logger = logging.getLogger(__name__)

Path = List[PathSegment]
Checker = Callable[[Any, Any, Path, ExecutionContext], Awaitable[Any]]

_CHECKERS: Dict[SchemaKind, Checker] = {}


def register_checker(*kinds: SchemaKind | str) -> Callable[[Checker], Checker]:
    """Register the structural checker for one or more node kinds."""

    def decorator(fn: Checker) -> Checker:
        for kind in kinds:
            _CHECKERS[SchemaKind(kind)] = fn
        return fn

    return decorator


def get_checker(kind: SchemaKind) -> Checker:
    try:
        return _CHECKERS[kind]
    except KeyError:
        raise SchemaDefinitionError(f"No checker registered for schema kind {kind.value!r}") from None


def run_sync(coro: Coroutine[Any, Any, Any]) -> Any:
    """Drive a checker coroutine to completion without an event loop."""
    try:
        coro.send(None)
    except StopIteration as stop:
        return stop.value
    coro.close()
    raise AsyncRequiredError()


async def execute(node: Schema, value: Any, path: Path, ctx: ExecutionContext) -> Any:
    """Validate ``value`` against ``node``; return the output or raise ``ValidationError``."""
    if value is MISSING and node.default_factory is not None:
        try:
            value = node.default_factory()
        except Exception as e:
            raise ValidationError(
                ErrorKind.TRANSFORM_FAILURE, f"Default value factory failed: {e}", path
            ) from e
    if value is MISSING and node.accepts_missing:
        return MISSING
    if value is None and node.accepts_null:
        return None

    checker = get_checker(node.kind)
    try:
        output = await checker(node, value, path, ctx)
        if node.modifiers:
            output = await apply_modifiers(node, output, path, ctx)
        return output
    except AsyncRequiredError:
        raise
    except ValidationError as e:
        if node.fallback is None:
            raise
        logger.debug("Using fallback at %s after: %s", format_path(path) or "<root>", e.message)
        try:
            return node.fallback(e)
        except Exception as fallback_error:
            logger.debug("Fallback raised at %s", format_path(path) or "<root>", exc_info=True)
            raise ValidationError(
                ErrorKind.TRANSFORM_FAILURE, f"Fallback failed: {fallback_error}", path
            ) from fallback_error


async def call_user_function(
    fn: Callable[[Any], Any], is_async: bool, value: Any, path: Path, ctx: ExecutionContext
) -> Any:
    """Invoke a refinement/transform/check, honouring the sync/async mode."""
    if is_async and not ctx.allow_async:
        raise AsyncRequiredError(path=path)
    result = fn(value)
    if inspect.isawaitable(result):
        if not ctx.allow_async:
            if inspect.iscoroutine(result):
                result.close()
            raise AsyncRequiredError(path=path)
        result = await result
    return result


async def apply_modifiers(node: Schema, value: Any, path: Path, ctx: ExecutionContext) -> Any:
    """Run the node's constraints, refinements and transforms in declaration order."""
    for modifier in node.modifiers:
        if isinstance(modifier, Transform):
            value = await _apply_transform(modifier, value, path, ctx)
        elif isinstance(modifier, Refinement):
            await _apply_refinement(modifier, value, path, ctx)
        else:
            _apply_constraint(modifier, value, path)
    return value


async def _apply_transform(transform: Transform, value: Any, path: Path, ctx: ExecutionContext) -> Any:
    try:
        return await call_user_function(transform.fn, transform.is_async, value, path, ctx)
    except ValidationError:
        raise
    except Exception as e:
        logger.debug("Transform failed at %s", format_path(path) or "<root>", exc_info=True)
        raise ValidationError(ErrorKind.TRANSFORM_FAILURE, f"Transform failed: {e}", path) from e


async def _apply_refinement(refinement: Refinement, value: Any, path: Path, ctx: ExecutionContext) -> None:
    try:
        passed = await call_user_function(refinement.predicate, refinement.is_async, value, path, ctx)
    except ValidationError:
        raise
    except Exception as e:
        logger.debug("Refinement raised at %s", format_path(path) or "<root>", exc_info=True)
        raise _refinement_failure(refinement, value, path) from e
    if not passed:
        raise _refinement_failure(refinement, value, path)


def _refinement_failure(refinement: Refinement, value: Any, path: Path) -> ValidationError:
    try:
        message = refinement.render_message(value)
    except Exception as e:
        logger.debug("Refinement message raised at %s", format_path(path) or "<root>", exc_info=True)
        error = ValidationError(ErrorKind.REFINEMENT_FAILURE, DEFAULT_REFINEMENT_MESSAGE, path)
        error.__cause__ = e
        return error
    return ValidationError(ErrorKind.REFINEMENT_FAILURE, message, path)


def _apply_constraint(constraint: Constraint, value: Any, path: Path) -> None:
    try:
        failure = constraint.check(value)
    except Exception as e:
        raise ValidationError(
            ErrorKind.CONSTRAINT_VIOLATION,
            constraint.message or f"Constraint could not be evaluated: {e}",
            path,
        ) from e
    if failure is not None:
        raise ValidationError(ErrorKind.CONSTRAINT_VIOLATION, failure, path)


# -- shared helpers ---------------------------------------------------------

_EXPECTED = {
    SchemaKind.STRING: "a string",
    SchemaKind.NUMBER: "a number",
    SchemaKind.BOOLEAN: "a boolean",
    SchemaKind.BIGINT: "a bigint",
    SchemaKind.DATE: "a date",
    SchemaKind.NULL: "null",
    SchemaKind.UNDEFINED: "undefined",
    SchemaKind.VOID: "undefined or null",
    SchemaKind.OBJECT: "an object",
    SchemaKind.INTERFACE: "an object",
    SchemaKind.DISCRIMINATED_UNION: "an object",
    SchemaKind.ARRAY: "an array",
    SchemaKind.TUPLE: "a tuple",
    SchemaKind.RECORD: "a record",
    SchemaKind.MAP: "a map",
    SchemaKind.SET: "a set",
}


def type_mismatch(node: Schema, value: Any, path: Path, message: str | None = None) -> ValidationError:
    """Build the TYPE_MISMATCH error for ``node`` (honouring ``.error()``)."""
    if node.type_message:
        text = node.type_message
    elif message:
        text = message
    else:
        text = f"Value must be {_EXPECTED.get(node.kind, node.type_name)}"
    return ValidationError(
        ErrorKind.TYPE_MISMATCH,
        text,
        path,
        context={"expected": node.type_name, "received": _received(value)},
    )


def _received(value: Any) -> str:
    if value is MISSING:
        return "missing"
    if value is None:
        return "null"
    return type(value).__name__


class Failures:
    """Collects child failures of a container node."""

    def __init__(self, ctx: ExecutionContext):
        self.ctx = ctx
        self.errors: List[ValidationError] = []

    def add(self, error: ValidationError) -> None:
        if self.ctx.flatten_errors and error.kind is ErrorKind.AGGREGATE:
            self.errors.extend(error.errors)
        else:
            self.errors.append(error)

    @property
    def stop(self) -> bool:
        return self.ctx.abort_early and bool(self.errors)

    async def run(self, node: Schema, value: Any, path: Path) -> Tuple[bool, Any]:
        """Execute a child; record its failure instead of raising."""
        try:
            return True, await execute(node, value, path, self.ctx)
        except AsyncRequiredError:
            raise
        except ValidationError as e:
            self.add(e)
            return False, None

    def raise_if_any(self, message: str, path: Path) -> None:
        if self.errors:
            raise AggregateError(message, path, self.errors)


def resolve_lazy(node: LazySchema, ctx: ExecutionContext) -> Schema:
    target = ctx.resolved.get(id(node))
    if target is None:
        target = resolve(node)
        ctx.resolved[id(node)] = target
    return target


# -- primitives -------------------------------------------------------------


@register_checker(SchemaKind.STRING)
async def check_string(node, value, path, ctx):
    if not isinstance(value, str):
        raise type_mismatch(node, value, path)
    return value


@register_checker(SchemaKind.NUMBER)
async def check_number(node, value, path, ctx):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise type_mismatch(node, value, path)
    if isinstance(value, float) and math.isnan(value):
        raise type_mismatch(node, value, path, "Value must be a number, received NaN")
    return value


@register_checker(SchemaKind.BOOLEAN)
async def check_boolean(node, value, path, ctx):
    if not isinstance(value, bool):
        raise type_mismatch(node, value, path)
    return value


@register_checker(SchemaKind.BIGINT)
async def check_bigint(node, value, path, ctx):
    if node.coerce_strings and isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise type_mismatch(node, value, path, f"Cannot convert {value!r} to BigInt") from None
    if isinstance(value, bool) or not isinstance(value, int):
        raise type_mismatch(node, value, path)
    return value


@register_checker(SchemaKind.DATE)
async def check_date(node, value, path, ctx):
    if not isinstance(value, _dt.date):
        raise type_mismatch(node, value, path)
    return value


@register_checker(SchemaKind.LITERAL)
async def check_literal(node, value, path, ctx):
    if type(value) is not type(node.value) or value != node.value:
        raise type_mismatch(node, value, path, f"Expected literal {node.value!r}, received {value!r}")
    return value


@register_checker(SchemaKind.NULL)
async def check_null(node, value, path, ctx):
    if value is not None:
        raise type_mismatch(node, value, path)
    return None


@register_checker(SchemaKind.UNDEFINED)
async def check_undefined(node, value, path, ctx):
    if value is not MISSING:
        raise type_mismatch(node, value, path)
    return MISSING


@register_checker(SchemaKind.VOID)
async def check_void(node, value, path, ctx):
    if value is not MISSING and value is not None:
        raise type_mismatch(node, value, path)
    return MISSING


@register_checker(SchemaKind.ANY, SchemaKind.UNKNOWN)
async def check_anything(node, value, path, ctx):
    return value


@register_checker(SchemaKind.NEVER)
async def check_never(node, value, path, ctx):
    raise type_mismatch(node, value, path, "No value satisfies a never schema")


@register_checker(SchemaKind.CUSTOM)
async def check_custom(node, value, path, ctx):
    try:
        passed = await call_user_function(node.check, node.check_is_async, value, path, ctx)
    except ValidationError:
        raise
    except Exception as e:
        logger.debug("Custom check raised at %s", format_path(path) or "<root>", exc_info=True)
        raise type_mismatch(node, value, path, node.message) from e
    if not passed:
        raise type_mismatch(node, value, path, node.message)
    return value


# -- containers -------------------------------------------------------------


def _is_absent(node: Schema, value: Mapping, name: str) -> bool:
    """Interfaces treat a key holding MISSING as present; objects do not."""
    if name not in value:
        return True
    return node.kind is not SchemaKind.INTERFACE and value[name] is MISSING


def _keeps_missing(node: Schema, value: Mapping, name: str) -> bool:
    """An interface key present in the input stays present in the output."""
    return node.kind is SchemaKind.INTERFACE and name in value


def _key_policy(node: ObjectSchema, ctx: ExecutionContext) -> str:
    if node.unknown_keys is not None:
        return node.unknown_keys
    if ctx.config is not None:
        return ctx.config.unknown_keys
    return "strict"


@register_checker(SchemaKind.OBJECT, SchemaKind.INTERFACE)
async def check_object(node, value, path, ctx):
    if not isinstance(value, Mapping):
        raise type_mismatch(node, value, path)

    failures = Failures(ctx)
    output: Dict[str, Any] = {}
    for field in node.fields:
        child_path = [*path, field.name]
        if _is_absent(node, value, field.name):
            if field.key_optional and not field.schema.has_default:
                continue
            if not node.is_key_optional(field):
                failures.add(ValidationError(
                    ErrorKind.MISSING_KEY, f"Missing required property: {field.name}", child_path
                ))
                if failures.stop:
                    break
                continue
        ok, result = await failures.run(field.schema, value.get(field.name, MISSING), child_path)
        if ok and (result is not MISSING or _keeps_missing(node, value, field.name)):
            output[field.name] = result
        if failures.stop:
            break

    if not failures.stop:
        policy = _key_policy(node, ctx)
        for key in value:
            if key in node.field_names:
                continue
            if policy == "strict":
                failures.add(ValidationError(
                    ErrorKind.UNEXPECTED_KEY, f"Unexpected property: {key}", [*path, key]
                ))
                if failures.stop:
                    break
            elif policy == "passthrough":
                output[key] = value[key]

    failures.raise_if_any("Object validation failed", path)
    return output


@register_checker(SchemaKind.ARRAY)
async def check_array(node, value, path, ctx):
    if not isinstance(value, (list, tuple)):
        raise type_mismatch(node, value, path)
    failures = Failures(ctx)
    output = []
    for index, item in enumerate(value):
        ok, result = await failures.run(node.element, item, [*path, index])
        if ok:
            output.append(result)
        elif failures.stop:
            break
    failures.raise_if_any("Array validation failed", path)
    return output


@register_checker(SchemaKind.TUPLE)
async def check_tuple(node, value, path, ctx):
    if not isinstance(value, (list, tuple)):
        raise type_mismatch(node, value, path)
    expected = len(node.items)
    if node.rest_schema is None and len(value) != expected:
        raise type_mismatch(node, value, path, f"Expected tuple of length {expected}, received length {len(value)}")
    if node.rest_schema is not None and len(value) < expected:
        raise type_mismatch(
            node, value, path, f"Expected tuple of at least {expected} elements, received {len(value)}"
        )

    failures = Failures(ctx)
    output = []
    for index, item in enumerate(value):
        schema = node.items[index] if index < expected else node.rest_schema
        ok, result = await failures.run(schema, item, [*path, index])
        if ok:
            output.append(result)
        elif failures.stop:
            break
    failures.raise_if_any("Tuple validation failed", path)
    return tuple(output)


@register_checker(SchemaKind.RECORD, SchemaKind.MAP)
async def check_mapping(node, value, path, ctx):
    if not isinstance(value, Mapping):
        raise type_mismatch(node, value, path)
    failures = Failures(ctx)
    output: Dict[Any, Any] = {}
    for key, item in value.items():
        child_path = [*path, key]
        key_ok, new_key = await failures.run(node.key, key, child_path)
        if failures.stop:
            break
        item_ok, new_item = await failures.run(node.value, item, child_path)
        if key_ok and item_ok:
            try:
                output[new_key] = new_item
            except TypeError:
                failures.add(ValidationError(
                    ErrorKind.TRANSFORM_FAILURE, "Transformed key is not hashable", child_path
                ))
        if failures.stop:
            break
    failures.raise_if_any(f"{node.subject} validation failed", path)
    return output


@register_checker(SchemaKind.SET)
async def check_set(node, value, path, ctx):
    if not isinstance(value, (set, frozenset)):
        raise type_mismatch(node, value, path)
    failures = Failures(ctx)
    output = []
    for index, item in enumerate(value):
        ok, result = await failures.run(node.element, item, [*path, index])
        if ok:
            output.append(result)
        elif failures.stop:
            break
    failures.raise_if_any("Set validation failed", path)
    try:
        return frozenset(output) if isinstance(value, frozenset) else set(output)
    except TypeError:
        raise ValidationError(ErrorKind.TRANSFORM_FAILURE, "Transformed set elements are not hashable", path) from None


# -- composites -------------------------------------------------------------


@register_checker(SchemaKind.LAZY)
async def check_lazy(node, value, path, ctx):
    return await execute(resolve_lazy(node, ctx), value, path, ctx)


@register_checker(SchemaKind.UNION)
async def check_union(node, value, path, ctx):
    errors: List[ValidationError] = []
    for member in node.members:
        try:
            return await execute(member, value, path, ctx)
        except AsyncRequiredError:
            raise
        except ValidationError as e:
            errors.append(e)
    raise ValidationError(
        ErrorKind.UNION_NO_MATCH, "Input failed to match any schema in the union", path, errors
    )


@register_checker(SchemaKind.DISCRIMINATED_UNION)
async def check_discriminated_union(node, value, path, ctx):
    if not isinstance(value, Mapping):
        raise type_mismatch(node, value, path)
    tag_path = [*path, node.discriminator]
    if _is_absent(node, value, node.discriminator):
        raise ValidationError(
            ErrorKind.DISCRIMINATOR_MISSING,
            f"Missing discriminator property: {node.discriminator}",
            tag_path,
        )
    tag = value[node.discriminator]
    member = node.lookup(tag)
    if member is None:
        allowed = ", ".join(repr(v) for v in node.tag_values)
        raise ValidationError(
            ErrorKind.DISCRIMINATOR_UNMATCHED,
            f"Invalid discriminator value {tag!r}, expected one of: {allowed}",
            tag_path,
        )
    return await execute(member, value, path, ctx)


@register_checker(SchemaKind.PATTERN)
async def check_pattern(node, value, path, ctx):
    return await execute(_dispatch_pattern(node, value, path), value, path, ctx)


def _dispatch_pattern(node: Schema, value: Any, path: Path) -> Schema:
    """Schema selected by a pattern dispatcher; rejections are UNION_NO_MATCH."""
    try:
        target = node.dispatch(value)
    except Exception as e:
        logger.debug("Pattern dispatcher raised at %s", format_path(path) or "<root>", exc_info=True)
        raise ValidationError(ErrorKind.UNION_NO_MATCH, f"Pattern dispatch failed: {e}", path) from e
    if isinstance(target, Invalid):
        raise ValidationError(ErrorKind.UNION_NO_MATCH, target.message, path)
    if not isinstance(target, Schema):
        raise ValidationError(
            ErrorKind.UNION_NO_MATCH,
            f"Pattern dispatcher must return a schema or invalid(), got {type(target).__name__}",
            path,
        )
    return target


_MEMBER_KINDS = (SchemaKind.UNION, SchemaKind.DISCRIMINATED_UNION, SchemaKind.INTERSECTION)


def _declared_keys(
    node: Schema, value: Any, ctx: ExecutionContext, seen: frozenset = frozenset()
) -> Tuple[frozenset | None, Tuple[str, ...]]:
    """Keys a mapping member declares, plus the unknown-key policies of its objects.

    Looks through lazy references, unions, discriminated unions, nested
    intersections and pattern targets. The keys are None when part of the
    member is not an object schema (a record, ``any_()``...); such a member
    receives every key and judges them itself.
    """
    if isinstance(node, LazySchema):
        if id(node) in seen:
            return frozenset(), ()
        seen = seen | {id(node)}
        node = resolve_lazy(node, ctx)
    if isinstance(node, ObjectSchema):
        return node.field_names, (_key_policy(node, ctx),)
    if node.kind is SchemaKind.PATTERN:
        try:
            target = _dispatch_pattern(node, value, [])
        except ValidationError:
            return None, ()
        return _declared_keys(target, value, ctx, seen)
    if node.kind in _MEMBER_KINDS:
        keys: set = set()
        policies: List[str] = []
        for member in node.members:
            member_keys, member_policies = _declared_keys(member, value, ctx, seen)
            if member_keys is None:
                return None, ()
            keys |= member_keys
            policies.extend(member_policies)
        return frozenset(keys), tuple(policies)
    return None, ()


@register_checker(SchemaKind.INTERSECTION)
async def check_intersection(node, value, path, ctx):
    failures = Failures(ctx)
    outputs: List[Any] = []
    declared: set = set()
    policies: List[str] = []
    is_mapping = isinstance(value, Mapping)
    judge_extras = is_mapping

    for member in node.members:
        member_input = value
        if is_mapping:
            keys, member_policies = _declared_keys(member, value, ctx)
            if keys is None:
                judge_extras = False
            else:
                # undeclared keys are judged once, against all members together
                member_input = {k: v for k, v in value.items() if k in keys}
                declared |= keys
                policies.extend(member_policies)
        ok, result = await failures.run(member, member_input, path)
        if ok:
            outputs.append(result)
        elif failures.stop:
            break

    failures.raise_if_any("Intersection validation failed", path)
    merged = _merge_outputs(outputs, path, failures)

    if judge_extras and policies:
        extras = [k for k in value if k not in declared]
        if "strict" in policies:
            for key in extras:
                failures.add(ValidationError(
                    ErrorKind.UNEXPECTED_KEY, f"Unexpected property: {key}", [*path, key]
                ))
        elif "passthrough" in policies and isinstance(merged, dict):
            for key in extras:
                merged.setdefault(key, value[key])

    failures.raise_if_any("Intersection validation failed", path)
    return merged


def _merge_outputs(outputs: Sequence[Any], path: Path, failures: Failures) -> Any:
    if not outputs:
        return MISSING
    merged = outputs[0]
    for other in outputs[1:]:
        merged = _merge_pair(merged, other, path, failures)
    return merged


def _merge_pair(left: Any, right: Any, path: Path, failures: Failures) -> Any:
    if isinstance(left, dict) and isinstance(right, dict):
        merged = dict(left)
        for key, item in right.items():
            if key in merged:
                merged[key] = _merge_pair(merged[key], item, [*path, key], failures)
            else:
                merged[key] = item
        return merged
    if left is right or (type(left) is type(right) and left == right):
        return left
    failures.add(ValidationError(
        ErrorKind.CONSTRAINT_VIOLATION,
        "Intersection members produced conflicting values",
        path,
        context={"left": repr(left), "right": repr(right)},
    ))
    return left
