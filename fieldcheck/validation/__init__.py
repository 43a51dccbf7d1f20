"""Declarative Field Validation

A Validation holds submitted field values and runs three kinds of
per-field entries over them:

- filters: value transformations (trim, lower, int, any callable)
- rules: named predicates with parameters (not_empty, min_length, email, ...)
- callbacks: custom checks that see every field and the running error map

Usage:
    from fieldcheck.validation import Validation, WILDCARD

    v = (Validation.factory({"username": "", "email": "bad"})
        .rule("username", "not_empty")
        .rule("email", "email"))

    passed, errors = v.check()
    # errors == {"username": "username must not be empty",
    #            "email": "email does not match the required format"}
"""
from .validate import (
    Validation,
    CheckResult,
    Wildcard,
    WILDCARD,
    factory,
    default_label,
)

from .registry import (
    RULES,
    FILTERS,
    Predicate,
    Filter,
    RuleContext,
    RuleRegistry,
    FilterRegistry,
    register_rule,
    rule_function,
    register_filter,
    filter_function,
)

from .messages import (
    MESSAGES,
    DEFAULT_MESSAGES,
    MessageTable,
    MessageSpec,
    build_message,
    register_message,
    message_templates,
    reset_messages,
    render_params,
)

from .collaborators import (
    Collaborators,
    Translator,
    ConfigSource,
    MxResolver,
    Profiler,
    LocaleProvider,
    CatalogTranslator,
    YamlConfigSource,
    StaticConfigSource,
    DnsMxResolver,
    LoggingProfiler,
    NullProfiler,
    SystemLocale,
    FixedLocale,
    default_collaborators,
)

from .cards import CardType, luhn_checksum, luhn_valid

__all__ = [
    # Engine
    "Validation",
    "CheckResult",
    "Wildcard",
    "WILDCARD",
    "factory",
    "default_label",
    # Registries
    "RULES",
    "FILTERS",
    "Predicate",
    "Filter",
    "RuleContext",
    "RuleRegistry",
    "FilterRegistry",
    "register_rule",
    "rule_function",
    "register_filter",
    "filter_function",
    # Messages
    "MESSAGES",
    "DEFAULT_MESSAGES",
    "MessageTable",
    "MessageSpec",
    "build_message",
    "register_message",
    "message_templates",
    "reset_messages",
    "render_params",
    # Collaborators
    "Collaborators",
    "Translator",
    "ConfigSource",
    "MxResolver",
    "Profiler",
    "LocaleProvider",
    "CatalogTranslator",
    "YamlConfigSource",
    "StaticConfigSource",
    "DnsMxResolver",
    "LoggingProfiler",
    "NullProfiler",
    "SystemLocale",
    "FixedLocale",
    "default_collaborators",
    # Cards
    "CardType",
    "luhn_checksum",
    "luhn_valid",
]
