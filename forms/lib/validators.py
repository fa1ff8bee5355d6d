"""Built-in field validators.

A validator is any callable ``value -> Optional[str]``: ``None`` when the
value is acceptable, otherwise the error message to show. The factories
here return such callables. Every built-in except ``required`` accepts
``None`` and empty strings, so optional fields can carry format validators
without also failing when left blank.

Example:
    >>> from forms.lib import validators as v
    >>> check = v.composite(v.required(), v.email())
    >>> check("")
    'This field is required'
    >>> check("ada@example.com") is None
    True
"""

from __future__ import annotations

import ipaddress
import re
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Pattern, Sequence, Union

from forms.lib.masks import matches_mask
from forms.lib.values import is_empty, is_number, values_equal

__all__ = [
    "Validator",
    "required",
    "email",
    "min_length",
    "max_length",
    "pattern",
    "numeric",
    "min_value",
    "max_value",
    "phone",
    "url",
    "password",
    "match_field",
    "date_range",
    "composite",
    "credit_card",
    "zip_code",
    "ip_address",
    "in_list",
    "value_range",
    "equal_to",
    "not_equal_to",
    "file_extension",
    "contains",
    "not_contains",
    "mask",
    "run_validators",
]

Validator = Callable[[Any], Optional[str]]
Number = Union[int, float]

EMAIL_PATTERN = re.compile(r"^[\w.-]+@([\w-]+\.)+[\w-]{2,4}$")
DECIMAL_PATTERN = re.compile(r"^-?\d*\.?\d+$")
INTEGER_PATTERN = re.compile(r"^-?\d+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")
PHONE_SEPARATORS = re.compile(r"[\s\-()]")
URL_HOST_PATH = r"(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)$"
URL_WITH_PROTOCOL = re.compile(r"^https?://" + URL_HOST_PATH)
URL_ANY = re.compile(r"^(https?://)?" + URL_HOST_PATH)
SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

CARD_PATTERNS = {
    "visa": re.compile(r"^4[0-9]{12}(?:[0-9]{3})?$"),
    "mastercard": re.compile(r"^5[1-5][0-9]{14}$"),
    "amex": re.compile(r"^3[47][0-9]{13}$"),
    "discover": re.compile(r"^6(?:011|5[0-9]{2})[0-9]{12}$"),
}

ZIP_PATTERNS = {
    "US": re.compile(r"^\d{5}(-\d{4})?$"),
    "CA": re.compile(r"^[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d$"),
    "UK": re.compile(r"^[A-Z]{1,2}[0-9][A-Z0-9]? ?[0-9][A-Z]{2}$"),
    "AU": re.compile(r"^\d{4}$"),
    "DE": re.compile(r"^\d{5}$"),
    "IN": re.compile(r"^\d{6}$"),
    "BR": re.compile(r"^\d{5}-\d{3}$"),
}
GENERIC_ZIP_PATTERN = re.compile(r"^[A-Za-z0-9]{3,}([ -][A-Za-z0-9]+)*$")


def _blank(value: Any) -> bool:
    return value is None or value == ""


def _to_number(value: Any) -> Optional[Number]:
    """Numbers as-is; numeric strings parsed; anything else is no match."""
    if is_number(value):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def _format_date(value: Union[date, datetime]) -> str:
    return f"{value.day}/{value.month}/{value.year}"


def run_validators(validators: Iterable[Validator], value: Any) -> Optional[str]:
    """Run validators in order and return the first error (short-circuit)."""
    for check in validators:
        error = check(value)
        if error is not None:
            return error
    return None


def required(message: str = "This field is required") -> Validator:
    def check(value: Any) -> Optional[str]:
        return message if is_empty(value) else None

    return check


def email(message: str = "Please enter a valid email address") -> Validator:
    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        return None if EMAIL_PATTERN.match(value) else message

    return check


def min_length(length: int, message: Optional[str] = None) -> Validator:
    text = message or f"Must be at least {length} characters"

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        return text if len(value) < length else None

    return check


def max_length(length: int, message: Optional[str] = None) -> Validator:
    text = message or f"Must be at most {length} characters"

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        return text if len(value) > length else None

    return check


def pattern(regex: Union[str, Pattern[str]], message: str = "Invalid format") -> Validator:
    compiled = re.compile(regex) if isinstance(regex, str) else regex

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        return None if compiled.search(value) else message

    return check


def numeric(message: str = "Please enter a valid number", allow_decimal: bool = True) -> Validator:
    """Numbers pass; strings must look numeric; anything else fails."""
    regex = DECIMAL_PATTERN if allow_decimal else INTEGER_PATTERN

    def check(value: Any) -> Optional[str]:
        if _blank(value):
            return None
        if is_number(value):
            if not allow_decimal and isinstance(value, float) and not value.is_integer():
                return message
            return None
        if isinstance(value, str):
            return None if regex.match(value) else message
        return message

    return check


def min_value(minimum: Number, message: Optional[str] = None) -> Validator:
    text = message or f"Value must be at least {minimum}"

    def check(value: Any) -> Optional[str]:
        number = _to_number(value)
        if number is None:
            # Leave non-numeric input to numeric()
            return None
        return text if number < minimum else None

    return check


def max_value(maximum: Number, message: Optional[str] = None) -> Validator:
    text = message or f"Value must be at most {maximum}"

    def check(value: Any) -> Optional[str]:
        number = _to_number(value)
        if number is None:
            return None
        return text if number > maximum else None

    return check


def value_range(
    minimum: Number,
    maximum: Number,
    message: Optional[str] = None,
    inclusive: bool = True,
) -> Validator:
    if message:
        text = message
    elif inclusive:
        text = f"Value must be between {minimum} and {maximum}"
    else:
        text = f"Value must be between {minimum} and {maximum} (exclusive)"

    def check(value: Any) -> Optional[str]:
        number = _to_number(value)
        if number is None:
            return None
        if inclusive:
            outside = number < minimum or number > maximum
        else:
            outside = number <= minimum or number >= maximum
        return text if outside else None

    return check


def phone(
    message: str = "Please enter a valid phone number",
    custom_pattern: Optional[Pattern[str]] = None,
) -> Validator:
    """International phone number; spaces, dashes and parentheses are ignored."""
    regex = custom_pattern or PHONE_PATTERN

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        return None if regex.match(PHONE_SEPARATORS.sub("", value)) else message

    return check


def url(message: str = "Please enter a valid URL", require_protocol: bool = True) -> Validator:
    regex = URL_WITH_PROTOCOL if require_protocol else URL_ANY

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        return None if regex.match(value) else message

    return check


def password(
    min_length: int = 8,
    require_uppercase: bool = True,
    require_lowercase: bool = True,
    require_digits: bool = True,
    require_special_chars: bool = True,
) -> Validator:
    """Password strength; the message lists every unmet requirement."""

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None

        missing = []
        if len(value) < min_length:
            missing.append(f"at least {min_length} characters")
        if require_uppercase and not re.search(r"[A-Z]", value):
            missing.append("uppercase letter")
        if require_lowercase and not re.search(r"[a-z]", value):
            missing.append("lowercase letter")
        if require_digits and not re.search(r"[0-9]", value):
            missing.append("number")
        if require_special_chars and not SPECIAL_CHARS.search(value):
            missing.append("special character")

        if not missing:
            return None
        if len(missing) == 1:
            return f"Password must contain {missing[0]}"
        return f"Password must contain {', '.join(missing[:-1])} and {missing[-1]}"

    return check


def match_field(
    other: str,
    get_values: Callable[[], Mapping[str, Any]],
    message: str = "Fields do not match",
) -> Validator:
    """Value must equal another field's current value.

    ``get_values`` is usually a bound ``controller.get_all``.
    """

    def check(value: Any) -> Optional[str]:
        if _blank(value):
            return None
        return None if values_equal(value, get_values().get(other)) else message

    return check


def date_range(
    min_date: Optional[Union[date, datetime]] = None,
    max_date: Optional[Union[date, datetime]] = None,
    message: str = "Please enter a valid date",
) -> Validator:
    """Dates (or ISO-8601 strings) within the inclusive bounds."""

    def check(value: Any) -> Optional[str]:
        if _blank(value):
            return None
        if isinstance(value, (date, datetime)):
            candidate = _as_datetime(value)
        elif isinstance(value, str):
            try:
                candidate = datetime.fromisoformat(value)
            except ValueError:
                return "Invalid date format"
        else:
            return message

        if min_date is not None and _naive(candidate) < _naive(_as_datetime(min_date)):
            return f"Date must be on or after {_format_date(min_date)}"
        if max_date is not None and _naive(candidate) > _naive(_as_datetime(max_date)):
            return f"Date must be on or before {_format_date(max_date)}"
        return None

    return check


def _naive(value: datetime) -> datetime:
    # Aware and naive datetimes cannot be compared; compare wall-clock time
    return value.replace(tzinfo=None)


def composite(*validators: Validator) -> Validator:
    """Combine validators; the first failure wins."""
    chain = tuple(validators)

    def check(value: Any) -> Optional[str]:
        return run_validators(chain, value)

    return check


def credit_card(
    message: str = "Please enter a valid credit card number",
    validate_type: bool = True,
) -> Validator:
    """Luhn checksum plus Visa/Mastercard/Amex/Discover prefix rules."""

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        number = re.sub(r"[\s-]", "", value)
        if not number.isdigit() or not 13 <= len(number) <= 19:
            return message
        if not _luhn_valid(number):
            return message
        if validate_type and not any(p.match(number) for p in CARD_PATTERNS.values()):
            return "Unrecognized card type"
        return None

    return check


def _luhn_valid(number: str) -> bool:
    total = 0
    for i, char in enumerate(reversed(number)):
        digit = int(char)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def zip_code(
    message: str = "Please enter a valid zip/postal code",
    country_code: Optional[str] = None,
) -> Validator:
    """Country-specific postal code, or a generic alphanumeric shape."""
    country = country_code.upper() if country_code else None

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        if country in ZIP_PATTERNS:
            if not ZIP_PATTERNS[country].match(value):
                return f"{message} for {country}"
            return None
        return None if GENERIC_ZIP_PATTERN.match(value) else message

    return check


def ip_address(
    message: str = "Please enter a valid IP address",
    allow_ipv4: bool = True,
    allow_ipv6: bool = True,
) -> Validator:
    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        try:
            parsed = ipaddress.ip_address(value)
        except ValueError:
            return message
        if parsed.version == 4 and not allow_ipv4:
            return message
        if parsed.version == 6 and not allow_ipv6:
            return message
        return None

    return check


def in_list(
    allowed: Sequence[Any],
    message: str = "Value is not in the allowed list",
    case_sensitive: bool = True,
) -> Validator:
    choices = tuple(allowed)

    def check(value: Any) -> Optional[str]:
        if _blank(value):
            return None
        if not case_sensitive and isinstance(value, str):
            lowered = value.lower()
            found = any(
                a.lower() == lowered if isinstance(a, str) else values_equal(a, value)
                for a in choices
            )
        else:
            found = any(values_equal(a, value) for a in choices)
        return None if found else message

    return check


def equal_to(
    target: Any,
    message: str = "Value must equal the specified value",
    case_sensitive: bool = True,
) -> Validator:
    def check(value: Any) -> Optional[str]:
        if _blank(value):
            return None
        return None if _same(value, target, case_sensitive) else message

    return check


def not_equal_to(
    target: Any,
    message: str = "Value must not equal the specified value",
    case_sensitive: bool = True,
) -> Validator:
    def check(value: Any) -> Optional[str]:
        if _blank(value):
            return None
        return message if _same(value, target, case_sensitive) else None

    return check


def _same(value: Any, target: Any, case_sensitive: bool) -> bool:
    if not case_sensitive and isinstance(value, str) and isinstance(target, str):
        return value.lower() == target.lower()
    return values_equal(value, target)


def file_extension(
    allowed_extensions: Sequence[str],
    message: str = "File type not allowed",
    case_sensitive: bool = False,
) -> Validator:
    allowed = [e.lstrip(".") for e in allowed_extensions]
    if not case_sensitive:
        allowed = [e.lower() for e in allowed]

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        if "." not in value:
            return message
        extension = value.rsplit(".", 1)[1]
        if not case_sensitive:
            extension = extension.lower()
        return None if extension in allowed else message

    return check


def contains(
    substring: str,
    message: Optional[str] = None,
    case_sensitive: bool = False,
) -> Validator:
    text = message or f'Value must contain "{substring}"'

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        if case_sensitive:
            return None if substring in value else text
        return None if substring.lower() in value.lower() else text

    return check


def not_contains(
    substring: str,
    message: Optional[str] = None,
    case_sensitive: bool = False,
) -> Validator:
    text = message or f'Value must not contain "{substring}"'

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        if case_sensitive:
            return text if substring in value else None
        return text if substring.lower() in value.lower() else None

    return check


def mask(mask_pattern: str, message: str = "Value does not match the expected format") -> Validator:
    """Value must be a complete rendering of ``mask_pattern``."""

    def check(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        return None if matches_mask(mask_pattern, value) else message

    return check
