"""Error Types

Result/Either types for collaborator calls that may fail, plus the error
code taxonomy and the AppError value carried by every fieldcheck fault.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Generic, NoReturn, TypeVar, Union, final
from uuid import uuid4

T = TypeVar("T")
E = TypeVar("E", bound="AppError")


class ErrorCode(Enum):
    """Hierarchical error code taxonomy.

    E1xxx: Network/External collaborator failures
    E7xxx: Configuration errors (caller misconfiguration)
    E9xxx: Internal/Unknown errors
    """
    # Network/External (E1xxx)
    E1003_DNS_FAILURE = 1003
    E1010_COLLABORATOR_UNAVAILABLE = 1010

    # Configuration (E7xxx)
    E7000_CONFIG_GENERIC = 7000
    E7001_UNKNOWN_RULE = 7001
    E7002_UNKNOWN_FILTER = 7002
    E7004_INVALID_TABLE = 7004
    E7005_INVALID_CALLBACK = 7005
    E7006_TABLE_NOT_FOUND = 7006

    # Internal (E9xxx)
    E9001_UNEXPECTED_ERROR = 9001

    @property
    def category(self) -> str:
        """Human-readable error category."""
        code = self.value
        if 1000 <= code < 2000:
            return "network"
        if 7000 <= code < 8000:
            return "configuration"
        return "internal"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Where and when a fault was raised."""
    correlation_id: str = field(default_factory=lambda: str(uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""


@dataclass(frozen=True, slots=True)
class AppError:
    """Structured description of a fault.

    ``origin`` in the context names the fieldcheck component (registry,
    engine, config, cards, email_domain, locale); ``metadata`` holds the
    identifiers involved (rule, filter, field, key) and never field values.
    """
    code: ErrorCode
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None

    def with_metadata(self, **kwargs) -> AppError:
        return AppError(code=self.code, message=self.message, context=self.context,
            metadata={**self.metadata, **kwargs}, cause=self.cause)

    def to_dict(self) -> dict:
        """Plain-data form for structured logs."""
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "correlation_id": self.context.correlation_id,
                "timestamp": self.context.timestamp.isoformat(),
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error


Result = Union[Ok[T], Err[E]]


def from_exception(
    exc: Exception,
    code: ErrorCode = ErrorCode.E9001_UNEXPECTED_ERROR,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    """Wrap an exception as Err, keeping it as the cause."""
    return Err(AppError(code=code, message=str(exc) or type(exc).__name__,
        context=ErrorContext(origin=origin), metadata=metadata, cause=exc))


def try_result(f: Callable[[], T], code: ErrorCode = ErrorCode.E9001_UNEXPECTED_ERROR, origin: str = "") -> Result[T, AppError]:
    """Call ``f``; an exception comes back as Err instead of propagating."""
    try:
        return Ok(f())
    except Exception as e:
        return from_exception(e, code=code, origin=origin)
