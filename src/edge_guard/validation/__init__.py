"""
Input validation for edge-guard.

Declarative schemas, type validators and the schema composer.
"""

from edge_guard.validation.models import (
    FieldType,
    RequestSchema,
    Schema,
    SchemaField,
    ValidatedRequest,
    ValidationContext,
    ValidationResult,
    schema_from_dict,
    schema_to_dict,
)
from edge_guard.validation.schema import validate_field, validate_object
from edge_guard.validation.validators import (
    VALIDATORS,
    sanitize_html,
    validate_array,
    validate_boolean,
    validate_date,
    validate_email,
    validate_enum,
    validate_non_disposable_email,
    validate_number,
    validate_password,
    validate_slug,
    validate_text,
    validate_url,
    validate_uuid,
)

__all__ = [
    "FieldType",
    "RequestSchema",
    "Schema",
    "SchemaField",
    "ValidatedRequest",
    "ValidationContext",
    "ValidationResult",
    "schema_from_dict",
    "schema_to_dict",
    "validate_field",
    "validate_object",
    "VALIDATORS",
    "sanitize_html",
    "validate_array",
    "validate_boolean",
    "validate_date",
    "validate_email",
    "validate_enum",
    "validate_non_disposable_email",
    "validate_number",
    "validate_password",
    "validate_slug",
    "validate_text",
    "validate_url",
    "validate_uuid",
]
