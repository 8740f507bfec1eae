"""Tests for asynchronous refinements, transforms and checks."""

import asyncio

import pytest

from dataknobs_schema import (
    AsyncRequiredError,
    ErrorKind,
    array,
    custom,
    lazy,
    number,
    object_,
    pattern,
    string,
    union,
)

TAKEN = {"admin", "root"}


async def is_available(username):
    await asyncio.sleep(0)
    return username not in TAKEN


async def shout(value):
    await asyncio.sleep(0)
    return value.upper()


class TestAsyncTagging:
    """Test compile-time async detection."""

    def test_sync_schema(self):
        assert not string().refine(lambda s: True).to_validator().is_async

    def test_async_refinement(self):
        assert string().refine(is_available).to_validator().is_async

    def test_async_detected_deep_in_tree(self):
        schema = object_({"users": array(object_({"name": string().transform(shout)}))})
        assert schema.to_validator().is_async

    def test_async_detected_through_lazy(self):
        node = lazy(lambda: object_({"name": string().refine(is_available), "next?": node}))
        assert node.to_validator().is_async

    def test_async_custom_check(self):
        async def check(value):
            return True

        assert custom(check).to_validator().is_async

    def test_forced_tag(self):
        assert string().refine(lambda s: True, is_async=True).to_validator().is_async


@pytest.mark.asyncio
class TestAsyncValidation:
    """Test validate_async and parse_async."""

    async def test_async_refinement_passes(self):
        validator = string().refine(is_available, "Username taken").to_validator()
        result = await validator.validate_async("ada")
        assert result.success
        assert result.data == "ada"

    async def test_async_refinement_fails(self):
        validator = object_({"username": string().refine(is_available, "Username taken")}).to_validator()
        result = await validator.validate_async({"username": "admin"})
        assert not result.success
        error = result.error.errors[0]
        assert error.kind is ErrorKind.REFINEMENT_FAILURE
        assert error.message == "Username taken"
        assert error.path == ["username"]

    async def test_async_transform(self):
        assert await string().transform(shout).parse_async("hi") == "HI"

    async def test_sync_schema_validates_async(self):
        result = await number().min(1).validate_async(0)
        assert not result.success
        assert result.error.kind is ErrorKind.CONSTRAINT_VIOLATION

    async def test_parse_async_raises(self):
        with pytest.raises(Exception) as exc_info:
            await string().refine(is_available).parse_async("root")
        assert exc_info.value.kind is ErrorKind.REFINEMENT_FAILURE

    async def test_validate_async_never_raises_for_invalid_input(self):
        result = await object_({"a": string().refine(is_available)}).validate_async("not an object")
        assert not result.success
        assert result.error.kind is ErrorKind.TYPE_MISMATCH

    async def test_async_custom_check(self):
        async def positive(value):
            return value > 0

        validator = custom(positive, "Must be positive").to_validator()
        assert (await validator.validate_async(1)).success
        assert (await validator.validate_async(-1)).error.message == "Must be positive"

    async def test_async_exception_is_wrapped(self):
        async def explode(value):
            raise RuntimeError("boom")

        result = await string().transform(explode).validate_async("x")
        assert result.error.kind is ErrorKind.TRANSFORM_FAILURE
        assert isinstance(result.error.__cause__, RuntimeError)

    async def test_order_is_sequential(self):
        seen = []

        async def record(value):
            seen.append(value)
            return True

        validator = array(number().refine(record)).to_validator()
        await validator.validate_async([1, 2, 3])
        assert seen == [1, 2, 3]

    async def test_concurrent_validations_are_independent(self):
        validator = object_({"name": string().refine(is_available)}).to_validator()
        results = await asyncio.gather(
            validator.validate_async({"name": "ada"}),
            validator.validate_async({"name": "root"}),
            validator.validate_async({"name": 3}),
        )
        assert [r.success for r in results] == [True, False, False]

    async def test_pattern_target_may_be_async(self):
        schema = pattern(lambda v: string().transform(shout))
        assert await schema.parse_async("x") == "X"


class TestSyncEntryPointsRejectAsync:
    """Test that parse/safe_parse fail fast on async schemas."""

    def test_parse_raises(self):
        with pytest.raises(AsyncRequiredError):
            string().refine(is_available).parse("ada")

    def test_safe_parse_reports(self):
        result = string().transform(shout).safe_parse("ada")
        assert not result.success
        assert result.error.kind is ErrorKind.ASYNC_REQUIRED

    def test_untagged_awaitable_is_detected(self):
        """A sync-looking function returning an awaitable is caught at run time."""
        def sneaky(value):
            return shout(value)

        result = string().transform(sneaky).safe_parse("x")
        assert result.error.kind is ErrorKind.ASYNC_REQUIRED

    def test_async_inside_union_is_not_swallowed(self):
        schema = union(string().refine(lambda s: False), pattern(lambda v: string().transform(shout)))
        result = schema.safe_parse("x")
        assert result.error.kind is ErrorKind.ASYNC_REQUIRED

    def test_async_not_replaced_by_fallback(self):
        schema = pattern(lambda v: string().transform(shout)).catch_all("fallback")
        with pytest.raises(AsyncRequiredError):
            schema.parse("x")
