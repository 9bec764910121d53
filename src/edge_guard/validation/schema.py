"""
Schema validation.

``validate_field`` dispatches one value to the validator for its field type;
``validate_object`` walks a whole field map and aggregates every failure into
a single result, so a client sees all problems with a payload at once.
"""

import re
from collections.abc import Mapping
from typing import Any

from edge_guard.validation.models import FieldType, Schema, SchemaField, ValidationResult
from edge_guard.validation.validators import (
    validate_array,
    validate_boolean,
    validate_date,
    validate_email,
    validate_enum,
    validate_number,
    validate_text,
    validate_url,
    validate_uuid,
)


def _check_string(value: Any, field: SchemaField) -> ValidationResult:
    result = validate_text(
        value,
        min_length=field.min_length,
        max_length=field.max_length,
        required=field.required,
    )
    if not result.valid:
        return result

    if field.pattern is not None and not re.search(field.pattern, result.sanitized):
        return ValidationResult.fail("Value does not match the required format")

    if field.enum is not None:
        return validate_enum(result.sanitized, field.enum)

    return result


def _check_number(value: Any, field: SchemaField) -> ValidationResult:
    return validate_number(
        value,
        min=field.min,
        max=field.max,
        integer=field.integer,
        required=field.required,
    )


def _check_array(value: Any, field: SchemaField) -> ValidationResult:
    if field.array_of is None:
        return ValidationResult.fail("Array schema not defined")

    item_field = field.array_of
    return validate_array(
        value,
        lambda item: validate_field(item, item_field),
        min_length=field.min_length,
        max_length=field.max_length,
        required=field.required,
    )


_CHECKS = {
    FieldType.STRING: _check_string,
    FieldType.EMAIL: lambda value, field: validate_email(value),
    FieldType.URL: lambda value, field: validate_url(value),
    FieldType.UUID: lambda value, field: validate_uuid(value),
    FieldType.NUMBER: _check_number,
    FieldType.BOOLEAN: lambda value, field: validate_boolean(value, required=field.required),
    FieldType.DATE: lambda value, field: validate_date(value, required=field.required),
    FieldType.ARRAY: _check_array,
}


def validate_field(value: Any, field: SchemaField, name: str | None = None) -> ValidationResult:
    """
    Validate a single value against its descriptor.

    Args:
        value: Untrusted input value
        field: Field descriptor
        name: Qualified field name used in error messages. Array items are
            validated without a name; the array reports their index instead.

    Returns:
        ValidationResult with a field-qualified error or the sanitized value
    """
    label = name or "Value"

    if value is None:
        if field.required:
            return ValidationResult.fail(f"{label} is required")
        return ValidationResult.ok(None)

    if field.custom_validator is not None:
        custom = field.custom_validator(value)
        if not custom.valid:
            return _qualify(custom, name)
        if custom.sanitized is not None:
            value = custom.sanitized

    if field.type is FieldType.OBJECT:
        if not isinstance(value, Mapping):
            return ValidationResult.fail(f"{label} must be an object")
        if field.properties is None:
            return ValidationResult.ok(dict(value))
        return validate_object(value, field.properties, name or "")

    return _qualify(_CHECKS[field.type](value, field), name)


def _qualify(result: ValidationResult, name: str | None) -> ValidationResult:
    if result.valid or not name:
        return result
    return ValidationResult.fail(f"{name}: {result.error}")


def validate_object(
    obj: Any,
    schema: Schema,
    prefix: str = "",
    *,
    strict: bool = False,
) -> ValidationResult:
    """
    Validate a mapping against a field schema.

    Only declared fields reach the sanitized output; undeclared input keys
    are dropped, or reported as errors when ``strict`` is set. All field
    errors are collected and joined with ``"; "``.

    Args:
        obj: Untrusted input (normally parsed JSON)
        schema: Field name -> descriptor map
        prefix: Dotted path of ``obj`` inside the enclosing payload
        strict: Reject undeclared keys instead of dropping them

    Returns:
        ValidationResult whose sanitized value is a new dict
    """
    if not isinstance(obj, Mapping):
        return ValidationResult.fail(f"{prefix or 'Body'} must be an object")

    sanitized: dict[str, Any] = {}
    errors: list[str] = []

    for field_name, field in schema.items():
        qualified = f"{prefix}.{field_name}" if prefix else field_name
        result = validate_field(obj.get(field_name), field, qualified)

        if not result.valid:
            errors.append(result.error)
        elif result.sanitized is not None:
            sanitized[field_name] = result.sanitized

    if strict:
        for key in obj:
            if key not in schema:
                qualified = f"{prefix}.{key}" if prefix else str(key)
                errors.append(f"{qualified} is not allowed")

    if errors:
        return ValidationResult.fail("; ".join(errors))

    return ValidationResult.ok(sanitized)
