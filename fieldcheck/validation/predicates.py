"""Built-in Predicates

Named, stateless rules. Each takes the field value first, then the rule's
parameters, and returns a bool. A few need a collaborator (config table,
DNS, locale) or read access to sibling fields; those take it as a keyword
argument, supplied by the engine and defaulting to the process-wide
collaborators when the predicate is called directly.

Usage:
    from fieldcheck.validation import predicates

    predicates.credit_card("4111 1111 1111 1111")      # True
    predicates.in_range(5, 1, 10)                       # True
    predicates.email("user@", strict=True)              # False
"""
from __future__ import annotations

import ipaddress
import re
import unicodedata
from datetime import date as _date
from typing import Any, Mapping, Sequence
from urllib.parse import urlsplit

from dateutil import parser as date_parser

from fieldcheck.errors import ErrorCode, try_result
from fieldcheck.logging import rules_logger

from . import cards
from .collaborators import ConfigSource, LocaleProvider, MxResolver, default_collaborators
from .registry import RULES

log = rules_logger()

builtin_rule = RULES.rule

DEFAULT_PHONE_LENGTHS = (7, 10, 11)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# ============================================================================
# Email patterns
# ============================================================================

_EMAIL_CHARS = r"[-_a-z0-9'+*$^&%=~!?{}]"
_EMAIL_LOOSE = re.compile(
    rf"{_EMAIL_CHARS}+(?:\.{_EMAIL_CHARS}+)*"
    r"@(?:(?![-.])[-a-z0-9.]+(?<![-.])\.[a-z]{2,6}|\d{1,3}(?:\.\d{1,3}){3})"
    r"(?::\d+)?",
    re.IGNORECASE | re.ASCII,
)


def _strict_email_pattern() -> re.Pattern:
    """RFC 822 address grammar folded into one expression (ASCII only)."""
    qtext = r"[^\x0d\x22\x5c\x80-\U0010ffff]"
    dtext = r"[^\x0d\x5b-\x5d\x80-\U0010ffff]"
    atom = r"[^\x00-\x20\x22\x28\x29\x2c\x2e\x3a-\x3c\x3e\x40\x5b-\x5d\x7f-\U0010ffff]+"
    pair = r"\x5c[\x00-\x7f]"

    domain_literal = rf"\x5b(?:{dtext}|{pair})*\x5d"
    quoted_string = rf"\x22(?:{qtext}|{pair})*\x22"
    sub_domain = rf"(?:{atom}|{domain_literal})"
    word = rf"(?:{atom}|{quoted_string})"
    domain = rf"{sub_domain}(?:\x2e{sub_domain})*"
    local_part = rf"{word}(?:\x2e{word})*"

    return re.compile(rf"{local_part}\x40{domain}")


_EMAIL_STRICT = _strict_email_pattern()


# ============================================================================
# Presence, pattern and length
# ============================================================================

@builtin_rule("not_empty", builtin=True)
def not_empty(value: Any) -> bool:
    """True for "0" and for anything that is not None, "", 0, False or an empty container."""
    return value == "0" or bool(value)


@builtin_rule("regex", builtin=True)
def regex(value: Any, expression: str | re.Pattern) -> bool:
    """Search the text of ``value``; anchors in ``expression`` decide whole-string matching."""
    return re.search(expression, _text(value)) is not None


@builtin_rule("min_length", builtin=True)
def min_length(value: Any, length: int) -> bool:
    return len(_text(value)) >= int(length)


@builtin_rule("max_length", builtin=True)
def max_length(value: Any, length: int) -> bool:
    return len(_text(value)) <= int(length)


@builtin_rule("exact_length", builtin=True)
def exact_length(value: Any, length: int) -> bool:
    return len(_text(value)) == int(length)


@builtin_rule("in_array", builtin=True)
def in_array(value: Any, options: Sequence[Any]) -> bool:
    return value in options


@builtin_rule("matches", uses=("fields",), builtin=True)
def matches(value: Any, match: str, *, fields: Mapping[str, Any]) -> bool:
    """True when ``value`` equals the current value of field ``match``."""
    return value == fields.get(match)


# ============================================================================
# Network formats
# ============================================================================

@builtin_rule("email", builtin=True)
def email(value: Any, strict: bool = False) -> bool:
    """Check an address against a permissive pattern, or the RFC 822 grammar when ``strict``."""
    pattern = _EMAIL_STRICT if strict is True else _EMAIL_LOOSE
    return pattern.fullmatch(_text(value)) is not None


@builtin_rule("email_domain", uses=("resolver",), builtin=True)
def email_domain(value: Any, *, resolver: MxResolver | None = None) -> bool:
    """True when the part after the first "@" has an MX record.

    Lookup failures count as "no record" and are logged, they never abort a check.
    """
    domain = re.sub(r"^[^@]+@", "", _text(value))
    if not domain:
        return False

    resolver = resolver or default_collaborators().resolver
    result = try_result(lambda: resolver.has_mx_record(domain), code=ErrorCode.E1003_DNS_FAILURE, origin="email_domain")
    if result.is_err():
        log.warning("mx_lookup_error", domain=domain, error=result.unwrap_err().message)
        return False
    return bool(result.unwrap())


@builtin_rule("url", builtin=True)
def url(value: Any) -> bool:
    """A URL with a scheme and a host."""
    text = _text(value)
    if not text or any(c.isspace() for c in text):
        return False
    try:
        parts = urlsplit(text)
        parts.port  # raises ValueError for a malformed port
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.hostname)


_RESERVED_V4 = tuple(ipaddress.ip_network(n) for n in ("0.0.0.0/8", "127.0.0.0/8", "169.254.0.0/16", "240.0.0.0/4"))
_PRIVATE = tuple(ipaddress.ip_network(n) for n in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16", "fc00::/7"))


def _is_reserved(address: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if address.version == 4:
        return any(address in net for net in _RESERVED_V4)
    return address.is_unspecified or address.is_loopback or address.is_link_local or address.is_reserved


@builtin_rule("ip", builtin=True)
def ip(value: Any, allow_private: bool = True) -> bool:
    """A syntactically valid IPv4/IPv6 address outside the reserved ranges."""
    try:
        address = ipaddress.ip_address(_text(value))
    except ValueError:
        return False

    if _is_reserved(address):
        return False
    if allow_private is False and any(address in net for net in _PRIVATE):
        return False
    return True


# ============================================================================
# Numbers with structure
# ============================================================================

@builtin_rule("credit_card", uses=("config",), builtin=True)
def credit_card(number: Any, card_types: str | Sequence[str] | None = None, *, config: ConfigSource | None = None) -> bool:
    """Validate a card number against the credit_cards table and the Luhn formula.

    ``card_types`` names an entry of the table ("visa", "mastercard", ...); a list
    passes when any of its types does. Unknown type names fail the rule.
    """
    digits = re.sub(r"\D+", "", _text(number))
    if not digits:
        return False

    if isinstance(card_types, (list, tuple, set, frozenset)):
        return any(credit_card(digits, t, config=config) for t in card_types)

    config = config or default_collaborators().config
    entry = cards.card_type(config.get_table(cards.TABLE_KEY), card_types or cards.DEFAULT_TYPE)
    if entry is None:
        log.debug("unknown_card_type", card_type=card_types)
        return False
    return entry.accepts(digits)


@builtin_rule("phone", builtin=True)
def phone(number: Any, lengths: Sequence[int] | None = None) -> bool:
    """Digit count (after stripping everything else) is one of ``lengths``."""
    if not isinstance(lengths, (list, tuple, set, frozenset)):
        lengths = DEFAULT_PHONE_LENGTHS
    digits = re.sub(r"\D+", "", _text(number))
    return len(digits) in {int(n) for n in lengths}


@builtin_rule("date", builtin=True)
def date(value: Any) -> bool:
    """Anything dateutil can make sense of."""
    if isinstance(value, _date):
        return True
    if not isinstance(value, str):
        return False
    try:
        date_parser.parse(value)
    except (ValueError, OverflowError):
        return False
    return True


# ============================================================================
# Character classes
# ============================================================================

def _categories(text: str, allowed: str, extra: str = "") -> bool:
    return bool(text) and all(c in extra or unicodedata.category(c)[0] in allowed for c in text)


@builtin_rule("alpha", builtin=True)
def alpha(value: Any, utf8: bool = False) -> bool:
    text = _text(value)
    if utf8 is True:
        return _categories(text, "L")
    return text.isascii() and text.isalpha()


@builtin_rule("alpha_numeric", builtin=True)
def alpha_numeric(value: Any, utf8: bool = False) -> bool:
    text = _text(value)
    if utf8 is True:
        return _categories(text, "LN")
    return text.isascii() and text.isalnum()


@builtin_rule("alpha_dash", builtin=True)
def alpha_dash(value: Any, utf8: bool = False) -> bool:
    """Letters, numbers, underscores and dashes."""
    text = _text(value)
    if utf8 is True:
        return _categories(text, "LN", extra="-_")
    return re.fullmatch(r"[-a-z0-9_]+", text, re.IGNORECASE | re.ASCII) is not None


@builtin_rule("digit", builtin=True)
def digit(value: Any, utf8: bool = False) -> bool:
    """Digits only, no signs or separators."""
    text = _text(value)
    if utf8 is True:
        return _categories(text, "N")
    return text.isascii() and text.isdigit()


# ============================================================================
# Locale-aware numbers
# ============================================================================

def _separator(locale: LocaleProvider | None) -> str | None:
    locale = locale or default_collaborators().locale
    result = try_result(locale.decimal_separator, code=ErrorCode.E1010_COLLABORATOR_UNAVAILABLE, origin="locale")
    if result.is_err():
        log.warning("locale_unavailable", error=result.unwrap_err().message)
        return None
    return result.unwrap()


@builtin_rule("numeric", uses=("locale",), builtin=True)
def numeric(value: Any, *, locale: LocaleProvider | None = None) -> bool:
    """Optional minus, then digits and the locale's decimal separator."""
    separator = _separator(locale)
    if separator is None:
        return False
    return re.fullmatch(rf"-?[0-9{re.escape(separator)}]+", _text(value)) is not None


@builtin_rule("decimal", uses=("locale",), builtin=True)
def decimal(value: Any, places: int = 2, *, locale: LocaleProvider | None = None) -> bool:
    """Digits, the locale's decimal separator, then exactly ``places`` digits."""
    separator = _separator(locale)
    if separator is None:
        return False
    return re.fullmatch(rf"[0-9]+{re.escape(separator)}[0-9]{{{int(places)}}}", _text(value)) is not None


@builtin_rule("range", builtin=True)
def in_range(number: Any, minimum: Any, maximum: Any) -> bool:
    """Inclusive numeric bounds. Values that are not numbers fail."""
    try:
        return float(minimum) <= float(number) <= float(maximum)
    except (TypeError, ValueError):
        return False


@builtin_rule("color", builtin=True)
def color(value: Any) -> bool:
    """Hex HTML color: optional "#", then 3 or 6 hex digits."""
    return re.fullmatch(r"#?[0-9a-f]{3}(?:[0-9a-f]{3})?", _text(value), re.IGNORECASE | re.ASCII) is not None
