"""
Type validators.

Each validator is a pure function taking an untrusted value and returning a
ValidationResult whose ``sanitized`` value is the normalized form callers
should use from then on. Validators never raise.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable
from urllib.parse import urlsplit

from edge_guard.validation.models import ValidationResult

DEFAULT_TEXT_MAX_LENGTH = 10000
DEFAULT_ARRAY_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
SLUG_MAX_LENGTH = 200
PASSWORD_MAX_LENGTH = 128

EMAIL_PATTERN = re.compile(
    r"^[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$"
)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

PASSWORD_SPECIAL_PATTERN = re.compile(r"""[!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?~`]""")

TRUE_STRINGS = frozenset({"true", "1", "yes"})
FALSE_STRINGS = frozenset({"false", "0", "no"})

ALLOWED_URL_SCHEMES = frozenset({"http", "https"})
_DEFAULT_PORTS = {"http": 80, "https": 443}

DISPOSABLE_EMAIL_DOMAINS = frozenset({
    "tempmail.com",
    "guerrillamail.com",
    "10minutemail.com",
    "throwaway.email",
    "mailinator.com",
    "temp-mail.org",
    "fakeinbox.com",
    "sharklasers.com",
    "getnada.com",
    "tempinbox.com",
    "yopmail.com",
    "maildrop.cc",
})

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}


# =============================================================================
# Basic validators
# =============================================================================


def validate_text(
    value: Any,
    *,
    min_length: int | None = None,
    max_length: int | None = None,
    required: bool = False,
) -> ValidationResult:
    """
    Validate free text.

    NUL bytes are removed and surrounding whitespace trimmed before the
    length checks run, so the limits apply to what is actually stored.
    """
    if value is None:
        if required:
            return ValidationResult.fail("Text is required")
        return ValidationResult.ok(None)

    if not isinstance(value, str):
        return ValidationResult.fail("Text must be a string")

    sanitized = value.replace("\x00", "").strip()
    min_length = min_length or 0
    max_length = DEFAULT_TEXT_MAX_LENGTH if max_length is None else max_length

    if required and not sanitized:
        return ValidationResult.fail("Text is required")

    if len(sanitized) < min_length:
        return ValidationResult.fail(f"Text must be at least {min_length} characters")

    if len(sanitized) > max_length:
        return ValidationResult.fail(f"Text must not exceed {max_length} characters")

    return ValidationResult.ok(sanitized)


def validate_email(value: Any) -> ValidationResult:
    """Validate an email address, returning it trimmed and lower-cased."""
    if not isinstance(value, str):
        return ValidationResult.fail("Email must be a string")

    normalized = value.strip().lower()

    if not normalized:
        return ValidationResult.fail("Email is required")

    if len(normalized) > EMAIL_MAX_LENGTH:
        return ValidationResult.fail("Email address is too long")

    if not EMAIL_PATTERN.match(normalized):
        return ValidationResult.fail("Invalid email format")

    return ValidationResult.ok(normalized)


def validate_url(value: Any) -> ValidationResult:
    """
    Validate an absolute HTTP(S) URL.

    The URL is re-serialized from its parsed parts: scheme and host are
    lower-cased, default ports dropped and an empty path becomes ``/``.
    """
    if not isinstance(value, str):
        return ValidationResult.fail("URL must be a string")

    trimmed = value.strip()
    if not trimmed:
        return ValidationResult.fail("URL is required")

    if any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in trimmed):
        return ValidationResult.fail("Invalid URL format")

    try:
        parts = urlsplit(trimmed)
        port = parts.port
    except ValueError:
        return ValidationResult.fail("Invalid URL format")

    scheme = parts.scheme.lower()
    if not scheme or not parts.netloc:
        return ValidationResult.fail("Invalid URL format")

    if scheme not in ALLOWED_URL_SCHEMES:
        return ValidationResult.fail("URL must use HTTP or HTTPS protocol")

    host = parts.hostname
    if not host:
        return ValidationResult.fail("Invalid URL format")

    if ":" in host:
        host = f"[{host}]"

    netloc = host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"

    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    serialized = f"{scheme}://{netloc}{parts.path or '/'}"
    if parts.query:
        serialized += f"?{parts.query}"
    if parts.fragment:
        serialized += f"#{parts.fragment}"

    return ValidationResult.ok(serialized)


def validate_uuid(value: Any) -> ValidationResult:
    """Validate an RFC 4122 UUID (versions 1-5), returned lower-cased."""
    if not isinstance(value, str):
        return ValidationResult.fail("UUID must be a string")

    if not UUID_PATTERN.fullmatch(value):
        return ValidationResult.fail("Invalid UUID format")

    return ValidationResult.ok(value.lower())


def _coerce_number(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return None
    return None


def validate_number(
    value: Any,
    *,
    min: float | None = None,
    max: float | None = None,
    integer: bool = False,
    required: bool = False,
) -> ValidationResult:
    """
    Validate a number, coercing numeric strings.

    NaN and infinities are rejected even though they parse as floats.
    """
    if value is None:
        if required:
            return ValidationResult.fail("Number is required")
        return ValidationResult.ok(None)

    number = _coerce_number(value)
    if number is None:
        return ValidationResult.fail("Invalid number format")

    if isinstance(number, float):
        if math.isnan(number):
            return ValidationResult.fail("Invalid number format")
        if math.isinf(number):
            return ValidationResult.fail("Number must be finite")
    else:
        # Reject integers outside the float range
        try:
            float(number)
        except OverflowError:
            return ValidationResult.fail("Number must be finite")

    if integer:
        if isinstance(number, float) and not number.is_integer():
            return ValidationResult.fail("Number must be an integer")
        number = int(number)

    if min is not None and number < min:
        return ValidationResult.fail(f"Number must be at least {min}")

    if max is not None and number > max:
        return ValidationResult.fail(f"Number must not exceed {max}")

    return ValidationResult.ok(number)


def validate_boolean(value: Any, *, required: bool = False) -> ValidationResult:
    """Validate a boolean, accepting common string and numeric spellings."""
    if value is None:
        if required:
            return ValidationResult.fail("Boolean is required")
        return ValidationResult.ok(None)

    if isinstance(value, bool):
        return ValidationResult.ok(value)

    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return ValidationResult.ok(True)
        if lowered in FALSE_STRINGS:
            return ValidationResult.ok(False)

    if isinstance(value, int) or (isinstance(value, float) and not math.isnan(value)):
        return ValidationResult.ok(value != 0)

    return ValidationResult.fail("Invalid boolean format")


def _to_iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"


def validate_date(value: Any, *, required: bool = False) -> ValidationResult:
    """
    Validate a date or datetime.

    Accepts ISO-8601 strings, epoch milliseconds and date/datetime objects.
    The sanitized value is an ISO-8601 UTC string with millisecond precision.
    """
    if value is None:
        if required:
            return ValidationResult.fail("Date is required")
        return ValidationResult.ok(None)

    if isinstance(value, datetime):
        return ValidationResult.ok(_to_iso(value))

    if isinstance(value, date):
        return ValidationResult.ok(_to_iso(datetime(value.year, value.month, value.day)))

    if isinstance(value, bool):
        return ValidationResult.fail("Invalid date format")

    if isinstance(value, (int, float)):
        try:
            moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return ValidationResult.fail("Invalid date value")
        return ValidationResult.ok(_to_iso(moment))

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return ValidationResult.fail("Invalid date value")
        return ValidationResult.ok(_to_iso(moment))

    return ValidationResult.fail("Invalid date format")


def validate_array(
    value: Any,
    item_validator: Callable[[Any], ValidationResult],
    *,
    min_length: int | None = None,
    max_length: int | None = None,
    required: bool = False,
) -> ValidationResult:
    """
    Validate a list, running ``item_validator`` on every element.

    Stops at the first invalid element and reports its index.
    """
    if value is None:
        if required:
            return ValidationResult.fail("Array is required")
        return ValidationResult.ok([])

    if not isinstance(value, (list, tuple)):
        return ValidationResult.fail("Value must be an array")

    min_length = min_length or 0
    max_length = DEFAULT_ARRAY_MAX_LENGTH if max_length is None else max_length

    if len(value) < min_length:
        return ValidationResult.fail(f"Array must have at least {min_length} items")

    if len(value) > max_length:
        return ValidationResult.fail(f"Array must not exceed {max_length} items")

    sanitized = []
    for index, item in enumerate(value):
        result = item_validator(item)
        if not result.valid:
            return ValidationResult.fail(f"Item {index}: {result.error}")
        sanitized.append(result.sanitized)

    return ValidationResult.ok(sanitized)


def validate_enum(
    value: Any,
    allowed_values: Iterable[str],
    *,
    required: bool = False,
) -> ValidationResult:
    """Validate that a string is one of ``allowed_values``."""
    if value is None:
        if required:
            return ValidationResult.fail("Value is required")
        return ValidationResult.ok(None)

    if not isinstance(value, str):
        return ValidationResult.fail("Value must be a string")

    allowed = list(allowed_values)
    if value not in allowed:
        return ValidationResult.fail(f"Value must be one of: {', '.join(allowed)}")

    return ValidationResult.ok(value)


# =============================================================================
# Security validators
# =============================================================================


def validate_non_disposable_email(value: Any) -> ValidationResult:
    """Validate an email and reject throwaway mailbox providers."""
    result = validate_email(value)
    if not result.valid:
        return result

    domain = result.sanitized.split("@", 1)[1]
    if domain in DISPOSABLE_EMAIL_DOMAINS:
        return ValidationResult.fail("Disposable email addresses are not allowed")

    return result


def validate_password(
    value: Any,
    *,
    min_length: int = 12,
    require_uppercase: bool = True,
    require_lowercase: bool = True,
    require_numbers: bool = True,
    require_special: bool = True,
) -> ValidationResult:
    """Check password strength. The password itself is returned untouched."""
    if not isinstance(value, str):
        return ValidationResult.fail("Password must be a string")

    if len(value) < min_length:
        return ValidationResult.fail(f"Password must be at least {min_length} characters")

    if len(value) > PASSWORD_MAX_LENGTH:
        return ValidationResult.fail(
            f"Password must not exceed {PASSWORD_MAX_LENGTH} characters"
        )

    if require_uppercase and not re.search(r"[A-Z]", value):
        return ValidationResult.fail("Password must contain at least one uppercase letter")

    if require_lowercase and not re.search(r"[a-z]", value):
        return ValidationResult.fail("Password must contain at least one lowercase letter")

    if require_numbers and not re.search(r"[0-9]", value):
        return ValidationResult.fail("Password must contain at least one number")

    if require_special and not PASSWORD_SPECIAL_PATTERN.search(value):
        return ValidationResult.fail("Password must contain at least one special character")

    return ValidationResult.ok(value)


def sanitize_html(value: Any) -> ValidationResult:
    """Entity-encode HTML metacharacters."""
    if not isinstance(value, str):
        return ValidationResult.fail("Input must be a string")

    return ValidationResult.ok("".join(_HTML_ESCAPES.get(ch, ch) for ch in value))


def validate_slug(value: Any) -> ValidationResult:
    """Validate a URL slug such as ``my-first-post``."""
    if not isinstance(value, str):
        return ValidationResult.fail("Slug must be a string")

    normalized = value.strip().lower()

    if not normalized:
        return ValidationResult.fail("Slug is required")

    if len(normalized) > SLUG_MAX_LENGTH:
        return ValidationResult.fail(f"Slug must not exceed {SLUG_MAX_LENGTH} characters")

    if not SLUG_PATTERN.match(normalized):
        return ValidationResult.fail(
            "Slug must contain only lowercase letters, numbers, and hyphens"
        )

    return ValidationResult.ok(normalized)


VALIDATORS: dict[str, Callable[..., ValidationResult]] = {
    "email": validate_email,
    "non_disposable_email": validate_non_disposable_email,
    "text": validate_text,
    "url": validate_url,
    "uuid": validate_uuid,
    "number": validate_number,
    "boolean": validate_boolean,
    "date": validate_date,
    "array": validate_array,
    "enum": validate_enum,
    "password": validate_password,
    "slug": validate_slug,
    "html": sanitize_html,
}
