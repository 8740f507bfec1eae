"""Pytest configuration and fixtures for schema package tests."""

import sys
from pathlib import Path

import pytest

# Add the package source to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def registry():
    """A fresh, isolated schema registry."""
    from dataknobs_schema.registry import SchemaRegistry

    return SchemaRegistry("test")


@pytest.fixture
def user_schema():
    """Object schema with a nested address and a list of contacts."""
    from dataknobs_schema import array, number, object_, string

    address = object_({"street": string(), "zipCode": string().regex(r"^\d{5}$")})
    return object_({
        "name": string().min_length(3),
        "age": number().integer().min(18),
        "contacts?": array(object_({"email": string().email(), "address": address})),
    })
