"""Validator configuration.

Settings can come from a dictionary, a YAML/JSON file, or environment
variables of the form ``DATAKNOBS_SCHEMA_<FIELD>``:

    DATAKNOBS_SCHEMA_ABORT_EARLY=true
    DATAKNOBS_SCHEMA_UNKNOWN_KEYS=strip
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml  # type: ignore[import-untyped]

from .exceptions import SchemaDefinitionError

logger = logging.getLogger(__name__)

ENV_PREFIX = "DATAKNOBS_SCHEMA_"

UNKNOWN_KEY_POLICIES = ("strict", "strip", "passthrough")


@dataclass(frozen=True)
class ValidatorConfig:
    """Execution options shared by every validation call of a validator.

    Attributes:
        abort_early: Stop collecting child failures in containers after the first one
        unknown_keys: Policy for object keys not declared in the schema, used when
            the object node did not choose one itself ("strict", "strip" or "passthrough")
        flatten_errors: Merge nested aggregate errors into their parent aggregate
    """

    abort_early: bool = False
    unknown_keys: str = "strict"
    flatten_errors: bool = True

    def __post_init__(self) -> None:
        if self.unknown_keys not in UNKNOWN_KEY_POLICIES:
            raise SchemaDefinitionError(
                f"Invalid unknown_keys policy: {self.unknown_keys!r}",
                context={"allowed": list(UNKNOWN_KEY_POLICIES)},
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidatorConfig:
        """Create a config from a dictionary, rejecting unknown settings.

        Args:
            data: Settings dictionary

        Returns:
            ValidatorConfig instance
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise SchemaDefinitionError(
                f"Unknown validator settings: {', '.join(sorted(unknown))}",
                context={"known": sorted(known)},
            )
        return cls(**dict(data))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> ValidatorConfig:
        """Load a config from a YAML or JSON file.

        The settings may sit at the top level or under a ``validator`` key.

        Args:
            path: Path to the configuration file

        Returns:
            ValidatorConfig instance
        """
        path = Path(path).resolve()
        if not path.exists():
            raise SchemaDefinitionError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()
        with open(path) as f:
            if suffix in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise SchemaDefinitionError(f"Unsupported file format: {suffix}")

        data = data or {}
        if "validator" in data:
            data = data["validator"] or {}
        logger.debug("Loaded validator config from %s", path)
        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        base: ValidatorConfig | None = None,
    ) -> ValidatorConfig:
        """Apply ``DATAKNOBS_SCHEMA_*`` overrides on top of ``base``.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)
            base: Config to override (defaults to the built-in defaults)

        Returns:
            ValidatorConfig instance
        """
        environ = os.environ if environ is None else environ
        settings = asdict(base or cls())
        known = set(settings)

        for key, raw in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            name = key[len(ENV_PREFIX):].lower()
            if name not in known:
                logger.warning("Ignoring unknown validator setting %s", key)
                continue
            settings[name] = _parse_value(raw)

        return cls.from_dict(settings)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_value(value: str) -> Any:
    """Parse an environment variable value to bool, int, float or str."""
    if value.lower() in ["true", "yes", "1"]:
        return True
    elif value.lower() in ["false", "no", "0"]:
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


DEFAULT_CONFIG = ValidatorConfig()
