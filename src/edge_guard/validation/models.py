"""
Validation data model.

Schemas are plain data: a SchemaField is tagged by its ``type`` and carries
only the constraints relevant to that type. Nested schemas are composed
structurally (``properties`` for objects, ``array_of`` for arrays).
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping


class FieldType(str, Enum):
    """Supported schema field types."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    EMAIL = "email"
    URL = "url"
    UUID = "uuid"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one value. Returned, never raised."""

    valid: bool
    error: str | None = None
    sanitized: Any = None

    @classmethod
    def ok(cls, sanitized: Any = None) -> "ValidationResult":
        return cls(valid=True, sanitized=sanitized)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)


CustomValidator = Callable[[Any], ValidationResult]


@dataclass(frozen=True)
class SchemaField:
    """
    Declarative descriptor for one input field.

    Attributes:
        type: Field type tag
        required: Reject missing (None) values
        min_length: Minimum string length or array size
        max_length: Maximum string length or array size
        min: Minimum numeric value
        max: Maximum numeric value
        integer: Require whole numbers (number fields)
        pattern: Regular expression the sanitized string must match
        enum: Allowed string values
        array_of: Descriptor applied to every array item
        properties: Nested field map for object fields
        custom_validator: Hook run before the type checks; may transform the value
    """

    type: FieldType
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    integer: bool = False
    pattern: str | None = None
    enum: tuple[str, ...] | None = None
    array_of: "SchemaField | None" = None
    properties: Mapping[str, "SchemaField"] | None = None
    custom_validator: CustomValidator | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        # Accept plain strings for the type tag and lists for enum
        if not isinstance(self.type, FieldType):
            object.__setattr__(self, "type", FieldType(self.type))

        for name in ("min_length", "max_length"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        for name in ("min", "max"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                raise ValueError(f"{name} must be a number, got {value!r}")

        if self.enum is not None:
            if isinstance(self.enum, (str, bytes)) or not isinstance(self.enum, Iterable):
                raise ValueError(f"enum must be a list of strings, got {self.enum!r}")
            values = tuple(self.enum)
            if not all(isinstance(item, str) for item in values):
                raise ValueError(f"enum must be a list of strings, got {self.enum!r}")
            object.__setattr__(self, "enum", values)

        if self.pattern is not None:
            if not isinstance(self.pattern, str):
                raise ValueError(f"pattern must be a string, got {self.pattern!r}")
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"Invalid pattern {self.pattern!r}: {e}") from e

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SchemaField":
        """
        Build a field from its serialized form.

        Keys use the camelCase names found in JSON schema files
        (``minLength``, ``arrayOf``...) as well as the snake_case attribute names.

        Raises:
            ValueError: If the descriptor is not a mapping or a constraint is malformed
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Field descriptor must be an object, got {data!r}")
        if "type" not in data:
            raise ValueError("Field descriptor is missing 'type'")

        def pick(*names: str) -> Any:
            for name in names:
                if name in data:
                    return data[name]
            return None

        array_of = pick("array_of", "arrayOf")
        properties = data.get("properties")

        return cls(
            type=FieldType(data["type"]),
            required=bool(data.get("required", False)),
            min_length=pick("min_length", "minLength"),
            max_length=pick("max_length", "maxLength"),
            min=data.get("min"),
            max=data.get("max"),
            integer=bool(data.get("integer", False)),
            pattern=data.get("pattern"),
            enum=data.get("enum"),
            array_of=cls.from_dict(array_of) if array_of is not None else None,
            properties=schema_from_dict(properties) if properties is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict. Custom validators are not serialized."""
        data: dict[str, Any] = {"type": self.type.value}
        if self.required:
            data["required"] = True
        for key, value in (
            ("minLength", self.min_length),
            ("maxLength", self.max_length),
            ("min", self.min),
            ("max", self.max),
            ("pattern", self.pattern),
        ):
            if value is not None:
                data[key] = value
        if self.integer:
            data["integer"] = True
        if self.enum is not None:
            data["enum"] = list(self.enum)
        if self.array_of is not None:
            data["arrayOf"] = self.array_of.to_dict()
        if self.properties is not None:
            data["properties"] = schema_to_dict(self.properties)
        return data


Schema = Mapping[str, SchemaField]


def schema_from_dict(data: Mapping[str, Mapping[str, Any]]) -> dict[str, SchemaField]:
    """Deserialize a field-name -> descriptor map."""
    if not isinstance(data, Mapping):
        raise ValueError(f"Schema must be an object of field descriptors, got {data!r}")
    return {name: SchemaField.from_dict(descriptor) for name, descriptor in data.items()}


def schema_to_dict(schema: Schema) -> dict[str, dict[str, Any]]:
    """Serialize a field-name -> descriptor map."""
    return {name: descriptor.to_dict() for name, descriptor in schema.items()}


@dataclass(frozen=True)
class RequestSchema:
    """Schemas for each part of a request."""

    body: Schema | None = None
    query: Schema | None = None
    headers: Schema | None = None


@dataclass(frozen=True)
class ValidationContext:
    """Per-request metadata, immutable for the life of the request."""

    identity: str
    user_agent: str
    timestamp_ms: int
    method: str
    path: str


@dataclass
class ValidatedRequest:
    """The sanitized view of a request handed to user handlers."""

    body: Any
    query: dict[str, Any]
    headers: dict[str, str]
    context: ValidationContext
    path_params: dict[str, str] = field(default_factory=dict)
