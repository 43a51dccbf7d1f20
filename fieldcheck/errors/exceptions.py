"""Configuration Faults

Raised when the caller configured something that cannot work: a rule or
filter name that resolves to nothing, a malformed domain table, a callback
with the wrong contract. Rule failures are never exceptions; they end up in
the error map returned by ``Validation.check``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .types import AppError, ErrorCode, ErrorContext


@dataclass(eq=False)
class FieldcheckError(Exception):
    """Base exception carrying a structured AppError."""
    error: AppError

    def __post_init__(self):
        super().__init__(self.error.message)

    def __str__(self) -> str:
        return self.error.message

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def metadata(self) -> dict[str, Any]:
        return self.error.metadata

    @classmethod
    def build(cls, message: str, *, code: ErrorCode = ErrorCode.E7000_CONFIG_GENERIC, origin: str = "",
              cause: Exception | None = None, **metadata) -> FieldcheckError:
        return cls(AppError(code=code, message=message, context=ErrorContext(origin=origin),
            metadata={k: v for k, v in metadata.items() if v is not None}, cause=cause))


class ConfigurationError(FieldcheckError):
    """Caller configuration error (fail fast)."""


class UnknownRuleError(ConfigurationError):
    """A rule identifier resolved to no predicate."""

    @classmethod
    def for_rule(cls, rule: str, field: str | None = None, cause: Exception | None = None) -> UnknownRuleError:
        return cls.build(f"Unknown validation rule '{rule}'" + (f" on field '{field}'" if field else ""),
            code=ErrorCode.E7001_UNKNOWN_RULE, origin="registry", cause=cause, rule=rule, field=field)


class UnknownFilterError(ConfigurationError):
    """A filter identifier resolved to no callable."""

    @classmethod
    def for_filter(cls, name: str, field: str | None = None, cause: Exception | None = None) -> UnknownFilterError:
        return cls.build(f"Unknown filter '{name}'" + (f" on field '{field}'" if field else ""),
            code=ErrorCode.E7002_UNKNOWN_FILTER, origin="registry", cause=cause, filter=name, field=field)


class InvalidCardTableError(ConfigurationError):
    """A credit card type table entry is malformed."""

    @classmethod
    def malformed(cls, card_type: str, detail: str, cause: Exception | None = None) -> InvalidCardTableError:
        return cls.build(f"Credit card type '{card_type}' is misconfigured: {detail}",
            code=ErrorCode.E7004_INVALID_TABLE, origin="cards", cause=cause, card_type=card_type)


class InvalidCallbackError(ConfigurationError):
    """A callback broke the (validation, field, errors) -> errors contract."""

    @classmethod
    def bad_return(cls, callback: Any, field: str, returned: Any) -> InvalidCallbackError:
        name = getattr(callback, "__qualname__", repr(callback))
        return cls.build(f"Callback {name} for field '{field}' returned {type(returned).__name__}, expected a mapping",
            code=ErrorCode.E7005_INVALID_CALLBACK, origin="engine", callback=name, field=field)


@dataclass(eq=False)
class TableNotFoundError(ConfigurationError):
    """A configuration table could not be loaded."""
    searched: list[str] = field(default_factory=list)

    @classmethod
    def for_key(cls, key: str, searched: list[str], cause: Exception | None = None) -> TableNotFoundError:
        error = AppError(code=ErrorCode.E7006_TABLE_NOT_FOUND, message=f"Configuration table '{key}' not found",
            context=ErrorContext(origin="config"), metadata={"key": key, "searched": searched}, cause=cause)
        return cls(error, searched)
