"""Tests for schema descriptors and the schema composer."""

import pytest

from edge_guard.validation import (
    FieldType,
    SchemaField,
    ValidationResult,
    schema_from_dict,
    schema_to_dict,
    validate_field,
    validate_object,
)


@pytest.fixture
def signup_schema() -> dict[str, SchemaField]:
    return {
        "email": SchemaField("email", required=True),
        "age": SchemaField("number", required=True, min=18, integer=True),
        "nickname": SchemaField("string", max_length=20),
    }


# =============================================================================
# SchemaField
# =============================================================================


class TestSchemaField:
    """Tests for SchemaField construction and serialization."""

    def test_type_string_is_coerced(self):
        """Plain strings are accepted for the type tag."""
        field = SchemaField("email")
        assert field.type is FieldType.EMAIL

    def test_unknown_type_rejected(self):
        """Unknown type tags raise."""
        with pytest.raises(ValueError):
            SchemaField("color")

    def test_enum_list_becomes_tuple(self):
        """Enum values are frozen."""
        assert SchemaField("string", enum=["a", "b"]).enum == ("a", "b")

    def test_invalid_pattern_rejected(self):
        """Patterns are compiled up front; regex errors surface as ValueError."""
        with pytest.raises(ValueError, match="Invalid pattern"):
            SchemaField("string", pattern="([")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_length": "3"},
            {"max_length": -1},
            {"max_length": True},
            {"min": "18"},
            {"max": None, "min": [1]},
            {"enum": "abc"},
            {"enum": [1, 2]},
            {"pattern": 5},
        ],
    )
    def test_malformed_constraints_rejected(self, kwargs):
        """Bounds must be numbers and enums lists of strings."""
        with pytest.raises(ValueError):
            SchemaField("string", **kwargs)

    @pytest.mark.parametrize(
        "descriptor",
        [["string"], "string", {"required": True}, {"type": "object", "properties": ["a"]}],
    )
    def test_from_dict_rejects_malformed_descriptor(self, descriptor):
        with pytest.raises(ValueError):
            SchemaField.from_dict(descriptor)

    def test_from_dict_accepts_camel_case(self):
        """Descriptor files use camelCase keys."""
        field = SchemaField.from_dict(
            {
                "type": "array",
                "required": True,
                "maxLength": 3,
                "arrayOf": {"type": "string", "minLength": 2},
            }
        )
        assert field.type is FieldType.ARRAY
        assert field.required is True
        assert field.max_length == 3
        assert field.array_of == SchemaField("string", min_length=2)

    def test_nested_schema_survives_serialization(self):
        """Nested object schemas serialize to plain dicts and back."""
        schema = {
            "address": SchemaField(
                "object",
                properties={"zip": SchemaField("string", required=True, pattern=r"^\d{5}$")},
            ),
            "tags": SchemaField("array", array_of=SchemaField("string", enum=["x", "y"])),
        }
        data = schema_to_dict(schema)
        assert data["address"]["properties"]["zip"] == {
            "type": "string",
            "required": True,
            "pattern": r"^\d{5}$",
        }
        assert data["tags"]["arrayOf"]["enum"] == ["x", "y"]
        assert schema_from_dict(data) == schema

    def test_custom_validator_not_serialized(self):
        """Custom validators stay in code."""
        field = SchemaField("string", custom_validator=lambda value: ValidationResult.ok(value))
        assert field.to_dict() == {"type": "string"}


# =============================================================================
# validate_field
# =============================================================================


class TestValidateField:
    """Tests for validate_field."""

    def test_required_missing_uses_field_name(self):
        """Missing required fields name the field."""
        result = validate_field(None, SchemaField("string", required=True), "name")
        assert result.error == "name is required"

    def test_errors_are_field_qualified(self):
        """Type errors are prefixed with the field name."""
        result = validate_field("abc", SchemaField("number"), "age")
        assert result.error == "age: Invalid number format"

    def test_string_pattern(self):
        """Patterns apply to the sanitized string."""
        field = SchemaField("string", pattern=r"^[A-Z]{3}$")
        assert validate_field("  ABC ", field).sanitized == "ABC"
        assert validate_field("abcd", field, "code").error == (
            "code: Value does not match the required format"
        )

    def test_string_enum(self):
        """String fields honour enum."""
        field = SchemaField("string", enum=["admin", "user"])
        assert validate_field("root", field, "role").error == "role: Value must be one of: admin, user"
        assert validate_field(" user ", field, "role").sanitized == "user"

    def test_custom_validator_runs_first(self):
        """A failing custom validator short-circuits the type checks."""
        field = SchemaField(
            "string",
            custom_validator=lambda value: ValidationResult.fail("Reserved name"),
        )
        assert validate_field("admin", field, "username").error == "username: Reserved name"

    def test_custom_validator_can_transform(self):
        """A passing custom validator may replace the value before type checks."""
        field = SchemaField(
            "string",
            max_length=5,
            custom_validator=lambda value: ValidationResult.ok(str(value).upper()),
        )
        assert validate_field(" abc ", field).sanitized == "ABC"

    def test_object_without_properties_accepts_any_mapping(self):
        """Free-form objects are copied as-is."""
        result = validate_field({"anything": [1, 2]}, SchemaField("object"), "meta")
        assert result.sanitized == {"anything": [1, 2]}
        assert validate_field("nope", SchemaField("object"), "meta").error == "meta must be an object"

    def test_array_without_item_schema(self):
        """Arrays need an item descriptor."""
        result = validate_field([1], SchemaField("array"), "tags")
        assert result.error == "tags: Array schema not defined"


# =============================================================================
# validate_object
# =============================================================================


class TestValidateObject:
    """Tests for validate_object."""

    def test_reports_only_the_failing_field(self, signup_schema):
        """A valid email and an underage value yield one age error."""
        result = validate_object({"email": "  USER@Example.COM ", "age": "17"}, signup_schema)
        assert result.valid is False
        assert result.error == "age: Number must be at least 18"

    def test_collects_all_errors(self, signup_schema):
        """Errors from every field are joined with '; '."""
        result = validate_object({"email": "bad", "nickname": "x" * 21}, signup_schema)
        assert result.error.split("; ") == [
            "email: Invalid email format",
            "age is required",
            "nickname: Text must not exceed 20 characters",
        ]

    def test_unknown_keys_dropped(self, signup_schema):
        """Only declared fields reach the output."""
        result = validate_object(
            {"email": "a@example.com", "age": 30, "is_admin": True},
            signup_schema,
        )
        assert result.valid is True
        assert result.sanitized == {"email": "a@example.com", "age": 30}

    def test_strict_rejects_unknown_keys(self, signup_schema):
        """Strict mode reports undeclared keys."""
        result = validate_object(
            {"email": "a@example.com", "age": 30, "is_admin": True},
            signup_schema,
            strict=True,
        )
        assert result.error == "is_admin is not allowed"

    def test_optional_missing_omitted(self, signup_schema):
        """Absent optional fields are not copied as None."""
        result = validate_object({"email": "a@example.com", "age": 30, "nickname": None}, signup_schema)
        assert "nickname" not in result.sanitized

    def test_non_mapping_input(self, signup_schema):
        """Lists and scalars are rejected, naming the prefix."""
        assert validate_object([1, 2], signup_schema).error == "Body must be an object"
        assert validate_object("x", signup_schema, "query").error == "query must be an object"

    def test_nested_errors_are_dot_qualified(self):
        """Nested field names carry their parent path."""
        schema = {
            "address": SchemaField(
                "object",
                required=True,
                properties={"zip": SchemaField("string", required=True, pattern=r"^\d{5}$")},
            )
        }
        assert validate_object({"address": {"zip": "abc"}}, schema).error == (
            "address.zip: Value does not match the required format"
        )
        assert validate_object({"address": {}}, schema).error == "address.zip is required"
        assert validate_object({"address": "x"}, schema).error == "address must be an object"
        assert validate_object({"address": {"zip": "12345", "x": 1}}, schema).sanitized == {
            "address": {"zip": "12345"}
        }

    def test_array_of_objects(self):
        """Array items are validated against array_of and report their index."""
        schema = {
            "items": SchemaField(
                "array",
                array_of=SchemaField("object", properties={"qty": SchemaField("number", min=1)}),
            )
        }
        ok = validate_object({"items": [{"qty": "2", "junk": 1}]}, schema)
        assert ok.sanitized == {"items": [{"qty": 2}]}

        bad = validate_object({"items": [{"qty": 1}, {"qty": 0}]}, schema)
        assert bad.error == "items: Item 1: qty: Number must be at least 1"

    def test_output_is_a_new_dict(self, signup_schema):
        """The input mapping is not mutated."""
        payload = {"email": " A@EXAMPLE.COM", "age": "30", "junk": 1}
        validate_object(payload, signup_schema)
        assert payload == {"email": " A@EXAMPLE.COM", "age": "30", "junk": 1}

    def test_sanitized_output_revalidates_to_itself(self, signup_schema):
        """Validating sanitized output is a no-op."""
        first = validate_object({"email": " A@EXAMPLE.COM", "age": "30", "nickname": " n "}, signup_schema)
        second = validate_object(first.sanitized, signup_schema)
        assert second.sanitized == first.sanitized
