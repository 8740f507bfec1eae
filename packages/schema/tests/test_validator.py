"""Tests for compiled validators and the end-to-end validation contract."""

import copy
import threading

import pytest

from dataknobs_schema import (
    AggregateError,
    AsyncRequiredError,
    ErrorKind,
    SchemaDefinitionError,
    ValidationError,
    Validator,
    ValidatorConfig,
    array,
    discriminated_union,
    lazy,
    literal,
    number,
    object_,
    string,
)


class TestValidatorEntryPoints:
    """Test parse, safe_parse and is_valid."""

    person = object_({"name": string().min_length(3), "age": number().min(18)})

    def test_aggregate_of_two_failures(self):
        result = Validator(self.person).safe_parse({"name": "Jo", "age": 15})
        assert not result.success
        assert isinstance(result.error, AggregateError)
        assert result.error.kind is ErrorKind.AGGREGATE
        assert [e.path for e in result.error.errors] == [["name"], ["age"]]
        assert [e.kind for e in result.error.errors] == [ErrorKind.CONSTRAINT_VIOLATION] * 2

    def test_array_element_path(self):
        result = array(number().positive()).safe_parse([1, 2, -3])
        assert [e.path for e in result.error.errors] == [[2]]

    def test_parse_raises_aggregate(self):
        with pytest.raises(ValidationError) as exc_info:
            Validator(self.person).parse({"name": "Joe"})
        assert exc_info.value.kind is ErrorKind.AGGREGATE
        assert exc_info.value.errors[0].kind is ErrorKind.MISSING_KEY

    def test_safe_parse_never_raises(self):
        validator = Validator(self.person)
        for value in (None, 1, "x", [], {"name": object()}, {"name": "Ada", "age": "old"}):
            assert not validator.safe_parse(value).success

    def test_is_valid(self):
        validator = Validator(self.person)
        assert validator.is_valid({"name": "Ada", "age": 36})
        assert not validator.is_valid({"name": "Ada"})

    def test_success_result(self):
        result = Validator(self.person).safe_parse({"name": "Ada", "age": 36})
        assert result.success
        assert result.error is None
        assert result.data == {"name": "Ada", "age": 36}

    def test_reusable(self):
        validator = Validator(string().to_upper())
        assert [validator.parse(v) for v in ("a", "b", "c")] == ["A", "B", "C"]

    def test_rejects_non_schema(self):
        with pytest.raises(SchemaDefinitionError):
            Validator("string")

    def test_repr(self):
        assert "async=False" in repr(Validator(string()))

    def test_schema_shortcuts_share_cached_validator(self):
        schema = string()
        schema.parse("a")
        assert schema._default_validator() is schema._default_validator()


class TestValidationContract:
    """Test properties that hold for every schema."""

    def test_input_is_never_mutated(self):
        schema = object_({
            "name": string().trim(),
            "tags": array(string().to_upper()),
            "extra?": string().default("x"),
        })
        value = {"name": "  Ada ", "tags": ["a", "b"]}
        snapshot = copy.deepcopy(value)
        output = schema.parse(value)
        assert value == snapshot
        assert output == {"name": "Ada", "tags": ["A", "B"], "extra": "x"}

    def test_output_is_revalidatable(self, user_schema):
        value = {
            "name": "Ada",
            "age": 36,
            "contacts": [{"email": "ada@example.com", "address": {"street": "Main", "zipCode": "12345"}}],
        }
        output = user_schema.parse(value)
        assert user_schema.parse(output) == output

    def test_fault_path_matches_location(self, user_schema):
        value = {
            "name": "Ada",
            "age": 36,
            "contacts": [
                {"email": "ada@example.com", "address": {"street": "Main", "zipCode": "12345"}},
                {"email": "bob@example.com", "address": {"street": "Side", "zipCode": "1234"}},
            ],
        }
        error = user_schema.safe_parse(value).error
        assert [e.path for e in error.iter_leaves()] == [["contacts", 1, "address", "zipCode"]]

    def test_discriminated_union_isolates_member_errors(self):
        a = object_({"type": literal("a"), "value": string()})
        b = object_({"type": literal("b"), "value": number()})
        c = object_({"type": literal("c"), "flag": string()})
        schema = discriminated_union("type", a, b, c)
        error = schema.safe_parse({"type": "b", "value": "text"}).error
        assert [(e.kind, e.path) for e in error.errors] == [(ErrorKind.TYPE_MISMATCH, ["value"])]

    def test_async_refinement_scenario(self):
        async def unused(name):
            return False

        schema = object_({"name": string().refine(unused, "Name is taken")})
        with pytest.raises(AsyncRequiredError):
            schema.parse({"name": "Ada"})


@pytest.mark.asyncio
async def test_async_refinement_reports_configured_message():
    async def unused(name):
        return False

    result = await object_({"name": string().refine(unused, "Name is taken")}).validate_async({"name": "Ada"})
    assert result.error.errors[0].kind is ErrorKind.REFINEMENT_FAILURE
    assert result.error.errors[0].message == "Name is taken"


class TestCompilation:
    """Test compile-time analysis."""

    def test_node_count(self):
        schema = object_({"a": string(), "b": array(number())})
        assert Validator(schema).analysis.node_count == 4

    def test_shared_nodes_counted_once(self):
        name = string()
        assert Validator(object_({"a": name, "b": name})).analysis.node_count == 2

    def test_recursive_schema_compiles(self):
        node = lazy(lambda: object_({"next?": node}))
        validator = Validator(node)
        assert validator.analysis.node_count == 2
        assert validator.parse({"next": {"next": {}}}) == {"next": {"next": {}}}

    def test_async_nodes_listed(self):
        async def check(value):
            return True

        validator = Validator(object_({"a": string().refine(check)}))
        assert validator.analysis.async_nodes == ("string",)


class TestValidatorConfig:
    """Test configuration applied per validator."""

    schema = object_({"a": number(), "b": number(), "c": number()})

    def test_abort_early(self):
        validator = Validator(self.schema, ValidatorConfig(abort_early=True))
        error = validator.safe_parse({"a": "x", "b": "y", "c": "z"}).error
        assert len(error.errors) == 1

    def test_collects_all_by_default(self):
        error = Validator(self.schema).safe_parse({"a": "x", "b": "y", "c": "z"}).error
        assert len(error.errors) == 3

    def test_unknown_keys_default(self):
        validator = Validator(object_({"a": number()}), ValidatorConfig(unknown_keys="strip"))
        assert validator.parse({"a": 1, "b": 2}) == {"a": 1}

    def test_node_policy_wins(self):
        validator = Validator(object_({"a": number()}).strict(), ValidatorConfig(unknown_keys="strip"))
        assert not validator.is_valid({"a": 1, "b": 2})

    def test_nested_aggregates(self):
        schema = object_({"inner": object_({"x": number()})})
        flat = Validator(schema).safe_parse({"inner": {"x": "1"}}).error
        assert flat.errors[0].path == ["inner", "x"]

        nested = Validator(schema, ValidatorConfig(flatten_errors=False)).safe_parse({"inner": {"x": "1"}}).error
        assert nested.errors[0].kind is ErrorKind.AGGREGATE
        assert nested.errors[0].path == ["inner"]
        assert nested.errors[0].errors[0].path == ["inner", "x"]


def test_concurrent_use_from_threads():
    validator = Validator(object_({"n": number().integer()}))
    outcomes = {}

    def worker(i):
        value = {"n": i} if i % 2 == 0 else {"n": "odd"}
        outcomes[i] = validator.safe_parse(value).success

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert outcomes == {i: i % 2 == 0 for i in range(20)}
