"""Compiled validators: the entry points for checking values.

```python
from dataknobs_schema import Validator, object_, string, number

validator = Validator(object_({"name": string(), "age": number().integer()}))
validator.parse({"name": "Ada", "age": 36})
# {'name': 'Ada', 'age': 36}
result = validator.safe_parse({"name": "Ada"})
result.success, result.error.errors[0].path
# (False, ['age'])
```
"""

from __future__ import annotations

import logging
from typing import Any

from .config import DEFAULT_CONFIG, ValidatorConfig
from .exceptions import AsyncRequiredError, ValidationError
from .executor import execute, run_sync
from .resolution import analyze
from .result import ExecutionContext, ValidationResult
from .schema import Schema, ensure_schema

logger = logging.getLogger(__name__)


class Validator:
    """A schema compiled for repeated use.

    Compilation walks the tree once: ``lazy`` references are resolved,
    discriminated union tables are built (raising ``SchemaDefinitionError``
    for malformed definitions) and the schema is tagged as requiring async
    execution when any refinement, transform or custom check is async.

    A validator holds no per-call state and can be shared between threads
    and tasks.

    Args:
        schema: Root schema node
        config: Execution options (defaults to ``ValidatorConfig()``)
    """

    def __init__(self, schema: Schema, config: ValidatorConfig | None = None):
        self.schema = ensure_schema(schema, "Validator")
        self.config = config or DEFAULT_CONFIG
        self.analysis = analyze(self.schema)

    @property
    def is_async(self) -> bool:
        """True when only ``validate_async``/``parse_async`` can run this schema."""
        return self.analysis.requires_async

    def _context(self, allow_async: bool) -> ExecutionContext:
        return ExecutionContext(allow_async=allow_async, config=self.config)

    def parse(self, value: Any) -> Any:
        """Validate synchronously and return the output.

        Raises:
            ValidationError: The value is invalid
            AsyncRequiredError: The schema contains async steps
        """
        if self.is_async:
            raise AsyncRequiredError()
        return run_sync(execute(self.schema, value, [], self._context(allow_async=False)))

    def safe_parse(self, value: Any) -> ValidationResult:
        """Like ``parse`` but reports failures in the result instead of raising."""
        try:
            return ValidationResult.ok(self.parse(value))
        except ValidationError as e:
            logger.debug("Validation failed: %s", e)
            return ValidationResult.fail(e)

    async def validate_async(self, value: Any) -> ValidationResult:
        """Validate with async steps allowed; failures are reported, never raised."""
        try:
            data = await execute(self.schema, value, [], self._context(allow_async=True))
        except ValidationError as e:
            logger.debug("Async validation failed: %s", e)
            return ValidationResult.fail(e)
        return ValidationResult.ok(data)

    async def parse_async(self, value: Any) -> Any:
        """Validate with async steps allowed and return the output, raising on failure."""
        return (await self.validate_async(value)).unwrap()

    def is_valid(self, value: Any) -> bool:
        return self.safe_parse(value).success

    def __repr__(self) -> str:
        return f"Validator(schema={self.schema!r}, async={self.is_async})"
