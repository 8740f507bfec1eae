"""Composable schema validation for dataknobs packages.

Schemas are immutable trees built from small constructors and chain
methods. Compiling a schema produces a ``Validator`` that checks values
synchronously (``parse``/``safe_parse``) or asynchronously
(``validate_async``/``parse_async``) and returns the validated, possibly
transformed, output:

- **Primitives**: ``string``, ``number``, ``bigint``, ``boolean``, ``date``,
  ``literal``, ``null``, ``undefined``, ``void``, ``any_``, ``unknown``,
  ``never``, ``custom``
- **Containers**: ``object_``, ``interface_``, ``array``, ``tuple_``,
  ``record``, ``map_``, ``set_``
- **Composites**: ``union``, ``discriminated_union``, ``intersection``,
  ``pattern``, ``lazy``
- **Errors**: ``ValidationError`` with an ``ErrorKind``, message and path

Example:
    ```python
    from dataknobs_schema import array, number, object_, string

    user = object_({
        "name": string().min_length(2),
        "age": number().integer().min(0),
        "tags?": array(string()),
    })
    result = user.safe_parse({"name": "A", "age": -1})
    [(e.path, e.message) for e in result.error.errors]
    # [(['name'], 'String must be at least 2 characters'), (['age'], 'Number must be at least 0')]
    ```
"""

from .composites import (
    DiscriminatedUnionSchema,
    IntersectionSchema,
    Invalid,
    LazySchema,
    PatternSchema,
    UnionSchema,
    discriminated_union,
    intersection,
    invalid,
    lazy,
    one_of,
    pattern,
    union,
)
from .config import DEFAULT_CONFIG, ValidatorConfig
from .constraints import (
    All,
    AnyOf,
    Constraint,
    Length,
    MultipleOf,
    Not,
    OneOf,
    Pattern,
    Predicate,
    Range,
)
from .containers import (
    ArraySchema,
    Field,
    InterfaceSchema,
    MapSchema,
    ObjectSchema,
    RecordSchema,
    SetSchema,
    TupleSchema,
    array,
    interface_,
    map_,
    object_,
    record,
    set_,
    tuple_,
)
from .exceptions import (
    AggregateError,
    AsyncRequiredError,
    ErrorKind,
    SchemaDefinitionError,
    SchemaError,
    ValidationError,
    format_path,
)
from .executor import register_checker
from .primitives import (
    AnySchema,
    BigIntSchema,
    BooleanSchema,
    CustomSchema,
    DateSchema,
    LiteralSchema,
    NeverSchema,
    NullSchema,
    NumberSchema,
    StringSchema,
    UndefinedSchema,
    UnknownSchema,
    VoidSchema,
    any_,
    bigint,
    boolean,
    custom,
    date,
    literal,
    never,
    none,
    null,
    number,
    string,
    undefined,
    unknown,
    void,
)
from .registry import (
    SchemaRegistry,
    describe,
    get_metadata,
    global_registry,
    register_schema,
    set_metadata,
)
from .result import ExecutionContext, ValidationResult
from .schema import MISSING, Missing, Refinement, Schema, SchemaKind, Transform
from .validator import Validator

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Node model
    "MISSING",
    "Missing",
    "Schema",
    "SchemaKind",
    "Refinement",
    "Transform",
    # Primitives
    "string",
    "number",
    "bigint",
    "boolean",
    "date",
    "literal",
    "null",
    "none",
    "undefined",
    "void",
    "any_",
    "unknown",
    "never",
    "custom",
    "StringSchema",
    "NumberSchema",
    "BigIntSchema",
    "BooleanSchema",
    "DateSchema",
    "LiteralSchema",
    "NullSchema",
    "UndefinedSchema",
    "VoidSchema",
    "AnySchema",
    "UnknownSchema",
    "NeverSchema",
    "CustomSchema",
    # Containers
    "object_",
    "interface_",
    "array",
    "tuple_",
    "record",
    "map_",
    "set_",
    "Field",
    "ObjectSchema",
    "InterfaceSchema",
    "ArraySchema",
    "TupleSchema",
    "RecordSchema",
    "MapSchema",
    "SetSchema",
    # Composites
    "union",
    "one_of",
    "discriminated_union",
    "intersection",
    "pattern",
    "invalid",
    "lazy",
    "Invalid",
    "UnionSchema",
    "DiscriminatedUnionSchema",
    "IntersectionSchema",
    "PatternSchema",
    "LazySchema",
    # Constraints
    "Constraint",
    "All",
    "AnyOf",
    "Not",
    "Range",
    "Length",
    "Pattern",
    "OneOf",
    "MultipleOf",
    "Predicate",
    # Execution
    "Validator",
    "ValidatorConfig",
    "DEFAULT_CONFIG",
    "ValidationResult",
    "ExecutionContext",
    "register_checker",
    # Errors
    "ErrorKind",
    "SchemaError",
    "SchemaDefinitionError",
    "ValidationError",
    "AggregateError",
    "AsyncRequiredError",
    "format_path",
    # Registry
    "SchemaRegistry",
    "global_registry",
    "register_schema",
    "set_metadata",
    "describe",
    "get_metadata",
]
