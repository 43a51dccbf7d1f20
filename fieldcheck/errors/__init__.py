"""Error Handling

Two kinds of failure exist in fieldcheck:

- Rule failures: data problems, reported as messages in the error map.
- Configuration faults: caller mistakes, raised as ConfigurationError.

Collaborator calls that may fail at runtime (DNS, locale) are wrapped in
Result values so a lookup failure becomes a failed rule instead of a crash.

Usage:
    from fieldcheck.errors import Ok, Err, try_result, ErrorCode

    match try_result(lambda: resolver.has_mx_record(domain), code=ErrorCode.E1003_DNS_FAILURE):
        case Ok(found):
            return found
        case Err(error):
            log.warning("mx_lookup_failed", error=error.message)
            return False
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    from_exception,
    try_result,
)

from .exceptions import (
    FieldcheckError,
    ConfigurationError,
    UnknownRuleError,
    UnknownFilterError,
    InvalidCardTableError,
    InvalidCallbackError,
    TableNotFoundError,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "from_exception",
    "try_result",
    "FieldcheckError",
    "ConfigurationError",
    "UnknownRuleError",
    "UnknownFilterError",
    "InvalidCardTableError",
    "InvalidCallbackError",
    "TableNotFoundError",
]
