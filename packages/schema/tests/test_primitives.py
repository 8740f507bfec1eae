"""Tests for primitive schema nodes."""

import datetime

import pytest

from dataknobs_schema import (
    MISSING,
    ErrorKind,
    SchemaDefinitionError,
    ValidationError,
    any_,
    bigint,
    boolean,
    custom,
    date,
    literal,
    never,
    null,
    number,
    string,
    undefined,
    unknown,
    void,
)


def error_of(schema, value):
    result = schema.safe_parse(value)
    assert not result.success, f"expected {value!r} to fail"
    return result.error


class TestString:
    """Test the string schema."""

    def test_accepts_strings(self):
        assert string().parse("hello") == "hello"

    @pytest.mark.parametrize("value", [1, None, b"bytes", ["a"], MISSING])
    def test_rejects_non_strings(self, value):
        error = error_of(string(), value)
        assert error.kind is ErrorKind.TYPE_MISMATCH
        assert error.message == "Value must be a string"
        assert error.path == []

    def test_custom_type_message(self):
        assert error_of(string().error("Name is required"), 5).message == "Name is required"

    def test_length_constraints(self):
        schema = string().min_length(3).max_length(5)
        assert schema.parse("abcd") == "abcd"
        assert error_of(schema, "ab").message == "String must be at least 3 characters"
        assert error_of(schema, "abcdef").message == "String must be at most 5 characters"
        assert error_of(string().length(2), "abc").message == "String must be exactly 2 characters"
        assert error_of(string().non_empty(), "").message == "String must not be empty"

    def test_custom_constraint_message(self):
        assert error_of(string().min_length(3, "too short"), "a").message == "too short"

    @pytest.mark.parametrize(
        "method,good,bad,message",
        [
            ("email", "user@example.com", "user@", "Invalid email address"),
            ("url", "https://example.com/path?q=1", "example", "Invalid URL"),
            ("uuid", "123e4567-e89b-12d3-a456-426614174000", "123e4567", "Invalid UUID"),
            ("cuid", "cjld2cjxh0000qzrmn831i7rn", "xjld2", "Invalid CUID"),
            ("cuid2", "tz4a98xxat96iws9zmbrgj3a", "Tz4a", "Invalid CUID2"),
            ("ulid", "01ARZ3NDEKTSV4RRFFQ69G5FAV", "01ARZ3NDEKTSV4RRFFQ69G5FAU!", "Invalid ULID"),
            ("nanoid", "V1StGXR8_Z5jdHi6B-myT", "bad id", "Invalid nanoid"),
            ("duration", "P3Y6M4DT12H30M5S", "P", "Invalid ISO 8601 duration"),
        ],
    )
    def test_formats(self, method, good, bad, message):
        schema = getattr(string(), method)()
        assert schema.parse(good) == good
        error = error_of(schema, bad)
        assert error.kind is ErrorKind.CONSTRAINT_VIOLATION
        assert error.message == message

    def test_affixes(self):
        schema = string().starts_with("ab").ends_with("yz").includes("m")
        assert schema.parse("ab-m-yz") == "ab-m-yz"
        assert error_of(schema, "xx-m-yz").message == 'String must start with "ab"'
        assert error_of(schema, "ab-m-xx").message == 'String must end with "yz"'
        assert error_of(schema, "ab--yz").message == 'String must include "m"'

    def test_datetime(self):
        assert string().datetime().parse("2020-01-01T00:00:00Z")
        assert not string().datetime().to_validator().is_valid("2020-01-01T00:00:00+02:00")
        assert string().datetime(offset=True).to_validator().is_valid("2020-01-01T00:00:00+02:00")
        assert string().datetime(local=True).to_validator().is_valid("2020-01-01T00:00:00")
        assert not string().datetime(local=True).to_validator().is_valid("2020-01-01T00:00:00Z")
        assert not string().datetime().to_validator().is_valid("2020-02-30T00:00:00Z")
        assert not string().datetime().to_validator().is_valid("2020-01-01T24:00:00Z")

    def test_datetime_precision(self):
        validator = string().datetime(precision=3).to_validator()
        assert validator.is_valid("2020-01-01T00:00:00.123Z")
        assert not validator.is_valid("2020-01-01T00:00:00.12Z")
        assert not validator.is_valid("2020-01-01T00:00:00Z")

    def test_datetime_rejects_conflicting_options(self):
        with pytest.raises(SchemaDefinitionError):
            string().datetime(offset=True, local=True)

    def test_date_and_time(self):
        assert string().date().to_validator().is_valid("2024-02-29")
        assert not string().date().to_validator().is_valid("2023-02-29")
        assert string().time().to_validator().is_valid("23:59:59")
        assert not string().time().to_validator().is_valid("24:00:00")
        assert string().time(precision=2).to_validator().is_valid("10:00:00.25")

    def test_ip_and_cidr(self):
        assert string().ip().to_validator().is_valid("192.168.0.1")
        assert string().ip().to_validator().is_valid("::1")
        assert not string().ip(version="v4").to_validator().is_valid("::1")
        assert error_of(string().ip(version="v6"), "10.0.0.1").message == "Invalid IPv6 address"
        assert string().cidr().to_validator().is_valid("10.0.0.0/8")
        assert not string().cidr().to_validator().is_valid("10.0.0.0")
        assert not string().cidr(version="v6").to_validator().is_valid("10.0.0.0/8")
        with pytest.raises(SchemaDefinitionError):
            string().ip(version="v5")

    def test_base64(self):
        validator = string().base64().to_validator()
        assert validator.is_valid("aGVsbG8=")
        assert not validator.is_valid("aGVsbG8")
        assert not validator.is_valid("")
        assert not validator.is_valid("aGV$bG8=")
        assert string().base64(padding=False).to_validator().is_valid("aGVsbG8")
        assert string().base64(url_safe=True).to_validator().is_valid("-_-_")

    def test_transforms(self):
        assert string().trim().to_lower().parse("  HeLLo ") == "hello"
        assert string().to_upper().parse("abc") == "ABC"

    def test_transform_then_constraint_sees_new_value(self):
        schema = string().trim().min_length(3)
        assert error_of(schema, "  a  ").message == "String must be at least 3 characters"


class TestNumber:
    """Test the number schema."""

    @pytest.mark.parametrize("value", [0, -3, 2.5, float("inf")])
    def test_accepts_numbers(self, value):
        assert number().parse(value) == value

    @pytest.mark.parametrize("value", [True, "1", None, float("nan")])
    def test_rejects(self, value):
        assert error_of(number(), value).kind is ErrorKind.TYPE_MISMATCH

    def test_bounds(self):
        assert error_of(number().min(18), 15).message == "Number must be at least 18"
        assert error_of(number().max(10), 11).message == "Number must be at most 10"
        assert error_of(number().gt(0), 0).message == "Number must be greater than 0"
        assert error_of(number().lt(0), 0).message == "Number must be less than 0"

    def test_signs(self):
        assert error_of(number().positive(), 0).message == "Number must be positive"
        assert error_of(number().negative(), 0).message == "Number must be negative"
        assert error_of(number().non_negative(), -1).message == "Number must be non-negative"
        assert error_of(number().non_positive(), 1).message == "Number must be non-positive"

    def test_integer(self):
        assert number().integer().parse(4.0) == 4.0
        assert error_of(number().integer(), 4.5).message == "Number must be an integer"
        assert error_of(number().integer(), float("inf")).message == "Number must be an integer"

    def test_multiple_and_step(self):
        assert number().multiple_of(5).parse(15) == 15
        assert error_of(number().multiple_of(5), 7).message == "Number must be a multiple of 5"
        assert error_of(number().step(0.5), 0.7).message == "Number must be a multiple of 0.5"

    def test_finite_and_safe(self):
        assert error_of(number().finite(), float("-inf")).message == "Number must be finite"
        assert number().safe().parse(2**53 - 1) == 2**53 - 1
        assert error_of(number().safe(), 2**53).message == "Number must be a safe number"
        assert number().safe().parse(1.5) == 1.5

    def test_port(self):
        assert number().port().parse(8080) == 8080
        assert error_of(number().port(), 0).message == "Port must be at least 1"
        assert error_of(number().port(), 70000).message == "Port must be at most 65535"
        assert error_of(number().port(), 80.5).message == "Port must be an integer"

    def test_first_failing_constraint_is_reported(self):
        schema = number().min(0).max(10)
        assert error_of(schema, -5).message == "Number must be at least 0"


class TestBigInt:
    """Test the bigint schema."""

    def test_accepts_large_ints(self):
        assert bigint().parse(10**30) == 10**30

    @pytest.mark.parametrize("value", [True, 1.0, "10"])
    def test_rejects(self, value):
        assert error_of(bigint(), value).kind is ErrorKind.TYPE_MISMATCH

    def test_bounds(self):
        assert error_of(bigint().min(5), 4).message == "BigInt must be at least 5"
        assert error_of(bigint().between(1, 3), 4).message == "BigInt must be between 1 and 3"
        assert error_of(bigint().positive(), -1).message == "BigInt must be positive"
        assert error_of(bigint().multiple_of(4), 6).message == "BigInt must be a multiple of 4"

    def test_from_string(self):
        schema = bigint().from_string().min(0)
        assert schema.parse(" 12345678901234567890 ") == 12345678901234567890
        assert schema.parse(7) == 7
        error = error_of(schema, "12a")
        assert error.kind is ErrorKind.TYPE_MISMATCH
        assert "BigInt" in error.message
        assert error_of(schema, "-3").kind is ErrorKind.CONSTRAINT_VIOLATION


class TestBooleanAndLiterals:
    """Test boolean, literal, null, undefined and void."""

    def test_boolean(self):
        assert boolean().parse(False) is False
        assert error_of(boolean(), 0).message == "Value must be a boolean"

    def test_literal(self):
        assert literal("cat").parse("cat") == "cat"
        error = error_of(literal("cat"), "dog")
        assert error.kind is ErrorKind.TYPE_MISMATCH
        assert error.message == "Expected literal 'cat', received 'dog'"

    def test_literal_is_type_strict(self):
        assert not literal(1).to_validator().is_valid(True)
        assert not literal(1).to_validator().is_valid(1.0)

    def test_null(self):
        assert null().parse(None) is None
        assert error_of(null(), MISSING).kind is ErrorKind.TYPE_MISMATCH

    def test_undefined(self):
        assert undefined().parse(MISSING) is MISSING
        assert error_of(undefined(), None).kind is ErrorKind.TYPE_MISMATCH

    def test_void(self):
        assert void().parse(None) is MISSING
        assert void().parse(MISSING) is MISSING
        assert error_of(void(), 0).message == "Value must be undefined or null"


class TestOpenTypes:
    """Test any, unknown and never."""

    @pytest.mark.parametrize("value", [None, MISSING, 1, "x", [1], {"a": 1}])
    def test_any_and_unknown(self, value):
        assert any_().parse(value) == value
        assert unknown().parse(value) == value

    def test_never(self):
        for value in (None, 1, MISSING):
            assert error_of(never(), value).kind is ErrorKind.TYPE_MISMATCH


class TestDate:
    """Test the date schema."""

    def test_accepts_dates(self):
        today = datetime.date(2024, 5, 1)
        assert date().parse(today) == today
        moment = datetime.datetime(2024, 5, 1, 12, 0)
        assert date().parse(moment) == moment

    def test_rejects_strings(self):
        assert error_of(date(), "2024-05-01").message == "Value must be a date"

    def test_bounds(self):
        schema = date().min("2024-01-01").max(datetime.date(2024, 12, 31))
        assert schema.parse(datetime.date(2024, 6, 1))
        assert error_of(schema, datetime.date(2023, 12, 31)).message.startswith("Date must be at or after")
        assert error_of(schema, datetime.datetime(2025, 1, 1, 0, 0)).message.startswith("Date must be at or before")

    def test_invalid_bound(self):
        with pytest.raises(SchemaDefinitionError):
            date().min("not a date")

    def test_future_and_past(self):
        assert date().past().parse(datetime.date(2000, 1, 1))
        assert error_of(date().future(), datetime.date(2000, 1, 1)).message == "Date must be in the future"
        later = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=1)
        assert date().future().parse(later) == later

    def test_format(self):
        assert date().format().parse(datetime.date(2024, 5, 1)) == "2024-05-01"
        assert date().format("%d/%m/%Y").parse(datetime.date(2024, 5, 1)) == "01/05/2024"


class TestCustom:
    """Test custom structural checks."""

    def test_custom_check(self):
        even = custom(lambda v: isinstance(v, int) and v % 2 == 0, "Must be an even integer")
        assert even.parse(4) == 4
        error = error_of(even, 3)
        assert error.kind is ErrorKind.TYPE_MISMATCH
        assert error.message == "Must be an even integer"

    def test_custom_check_that_raises(self):
        schema = custom(lambda v: v.startswith("a"))
        error = error_of(schema, 5)
        assert error.message == "Custom validation failed"
        assert isinstance(error.__cause__, AttributeError)

    def test_custom_requires_callable(self):
        with pytest.raises(SchemaDefinitionError):
            custom("nope")

    def test_parse_raises_validation_error(self):
        with pytest.raises(ValidationError):
            custom(lambda v: False).parse(1)
