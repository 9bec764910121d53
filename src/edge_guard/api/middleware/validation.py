"""
Request body and query string parsing for the handler wrapper.

Parsing is kept apart from schema validation: a body that is not JSON is
reported as ``Invalid JSON in request body`` with the parser's location,
while a well-formed body that breaks the schema gets field errors.
"""

import json
import logging
import re
from typing import Any

from fastapi import Request

logger = logging.getLogger(__name__)

# Methods whose body is validated against the body schema
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Control characters to remove from query parameters
# Allows: tab, newline, carriage return for legitimate text
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def format_size(size_bytes: int) -> str:
    """Format a byte count as a short human-readable string."""
    for unit, divisor in [("GB", 1024**3), ("MB", 1024**2), ("KB", 1024)]:
        if size_bytes >= divisor:
            return f"{size_bytes / divisor:g} {unit}"
    return f"{size_bytes} bytes"


class BodyTooLargeError(Exception):
    """Raised when a request body is larger than the allowed size."""

    def __init__(self, limit: int, size: int) -> None:
        self.limit = limit
        self.size = size
        super().__init__(self.detail)

    @property
    def detail(self) -> str:
        return f"Request body exceeds {format_size(self.limit)}"


class JSONParseError(Exception):
    """Raised when JSON parsing fails with detailed context."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        position: int | None = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.position = position
        super().__init__(message)

    @property
    def detail(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} at line {self.line}, column {self.column}"


def sanitize_query_value(value: str) -> str:
    """
    Remove null bytes and control characters from a query value.

    Keeps newlines and tabs which may be legitimate in some contexts.
    """
    if not value:
        return ""
    return CONTROL_CHARS_PATTERN.sub("", value.replace("\x00", ""))


def parse_json_body(body: bytes) -> Any:
    """
    Parse a JSON request body.

    An empty body parses to an empty object so that a schema with only
    optional fields accepts a bare POST.

    Args:
        body: Request body bytes

    Returns:
        Parsed JSON value

    Raises:
        JSONParseError: If the body is not UTF-8 encoded JSON
    """
    if not body or not body.strip():
        return {}

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        raise JSONParseError(message="Invalid UTF-8 encoding in request body")

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise JSONParseError(
            message=e.msg,
            line=e.lineno,
            column=e.colno,
            position=e.pos,
        )
    except RecursionError:
        raise JSONParseError(message="Maximum nesting depth exceeded")
    except ValueError as e:
        # Integer literals past the interpreter's digit limit
        raise JSONParseError(message=str(e))


async def read_body(request: Request, max_size: int | None = None) -> bytes:
    """
    Read the raw request body, enforcing ``max_size`` when given.

    The declared Content-Length is checked before anything is read, and the
    received length after.

    Raises:
        BodyTooLargeError: If either length exceeds ``max_size``
    """
    if max_size is not None:
        content_length = request.headers.get("content-length")
        if content_length and content_length.strip().isdigit():
            declared = int(content_length)
            if declared > max_size:
                raise BodyTooLargeError(max_size, declared)

    body = await request.body()
    if max_size is not None and len(body) > max_size:
        raise BodyTooLargeError(max_size, len(body))
    return body


async def read_json_body(request: Request, max_size: int | None = None) -> Any:
    """Read and parse the request body. Raises BodyTooLargeError or JSONParseError."""
    return parse_json_body(await read_body(request, max_size))


def query_params_dict(request: Request) -> dict[str, str]:
    """
    Collect query parameters into a plain dict of sanitized strings.

    Repeated keys keep the last value.
    """
    return {key: sanitize_query_value(value) for key, value in request.query_params.items()}
