"""Validation Engine

A Validation owns a mapping of field values, collects filters, rules and
callbacks per field through a fluent API, and runs them in one pass:

1. filters transform submitted values (written back immediately)
2. rules run in registration order; the first failing rule of a field
   records its message and stops that field's remaining rules
3. callbacks see the whole Validation and the running error map and
   return the new error map

Registering against WILDCARD (or True) applies an entry to every field;
entries on the field itself win when both name the same rule or filter.

Usage:
    from fieldcheck.validation import Validation, WILDCARD

    post = (Validation.factory(request_form)
        .filter(WILDCARD, "trim")
        .rule("username", "not_empty")
        .rule("username", "min_length", [4])
        .rule("password_confirm", "matches", ["password"])
        .label("password_confirm", "password confirmation"))

    result = post.check()
    if not result.submitted:
        ...  # form was never filled in
    elif not result:
        render(errors=result.errors)

A Validation is meant for one check() at a time; use one instance per
concurrent validation.
"""
from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Hashable, Iterator, Sequence

from fieldcheck.config import get_settings
from fieldcheck.errors import ErrorCode, InvalidCallbackError
from fieldcheck.logging import engine_logger

from . import filters as _filters  # noqa: F401  registers built-in filters
from . import predicates as _predicates  # noqa: F401  registers built-in rules
from .collaborators import Collaborators, default_collaborators
from .messages import MESSAGES, MessageTable, build_message
from .registry import FILTERS, RULES, FilterRegistry, RuleContext, RuleRegistry

log = engine_logger()

Callback = Callable[["Validation", str, dict[str, str]], "Mapping[str, str] | None"]

_NON_LETTERS = re.compile(r"[\W\d_]+")


class Wildcard(Enum):
    """Field identifier meaning "every field"."""
    ANY = "any field"

    def __repr__(self) -> str:
        return "WILDCARD"


WILDCARD = Wildcard.ANY


def default_label(field: str) -> str:
    """Field name with every run of non-letters turned into a space."""
    return _NON_LETTERS.sub(" ", str(field))


def _as_params(params: Any) -> tuple[Any, ...]:
    if params is None:
        return ()
    if isinstance(params, (list, tuple)):
        return tuple(params)
    return (params,)


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Outcome of Validation.check().

    Truthy when validation passed; unpacks as ``passed, errors``.
    ``submitted`` is False when none of the expected fields had a value,
    in which case nothing ran and ``passed`` is False.
    """
    passed: bool
    errors: dict[str, str] = field(default_factory=dict)
    submitted: bool = True

    def __bool__(self) -> bool:
        return self.passed

    def __iter__(self) -> Iterator[Any]:
        yield self.passed
        yield self.errors


class Validation(MutableMapping):
    """Field values plus the filters, rules and callbacks that apply to them."""

    def __init__(
        self,
        values: Mapping[str, Any] | None = None,
        *,
        collaborators: Collaborators | None = None,
        profiling: bool | None = None,
        rules: RuleRegistry = RULES,
        filters: FilterRegistry = FILTERS,
        messages: MessageTable = MESSAGES,
    ):
        self._data: dict[str, Any] = dict(values or {})
        self._filters: dict[Hashable, dict[Any, tuple[Any, ...]]] = {}
        self._rules: dict[Hashable, dict[Any, tuple[Any, ...]]] = {}
        self._callbacks: dict[Hashable, list[Callback]] = {}
        self._labels: dict[str, str] = {}

        self.collaborators = collaborators or default_collaborators()
        self.profiling = get_settings().PROFILING if profiling is None else profiling
        self.rule_registry = rules
        self.filter_registry = filters
        self.message_table = messages
        self.errors: dict[str, str] = {}

    @classmethod
    def factory(cls, values: Mapping[str, Any] | None = None, **options: Any) -> Validation:
        return cls(values, **options)

    # ------------------------------------------------------------------
    # Mapping interface over the field values
    # ------------------------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"<Validation fields={list(self._labels)}>"

    def as_array(self) -> dict[str, Any]:
        """Snapshot of the current (possibly filtered) values."""
        return dict(self._data)

    as_dict = as_array

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @staticmethod
    def _key(field: Any) -> Hashable:
        return WILDCARD if field is True or field is WILDCARD else field

    def _touch(self, field: Hashable) -> None:
        if field is not WILDCARD and field not in self._labels:
            self._labels[field] = default_label(field)

    def label(self, field: str, label: str) -> Validation:
        """Set or overwrite the display label of a field."""
        self._labels[field] = label
        return self

    def labels(self, labels: Mapping[str, str]) -> Validation:
        for name, text in labels.items():
            self.label(name, text)
        return self

    def get_labels(self) -> dict[str, str]:
        return dict(self._labels)

    def filter(self, field: Any, filter: Any, params: Any = None) -> Validation:
        """Add or overwrite a filter on a field; WILDCARD (or True) means every field.

            validation.filter(WILDCARD, "trim")
        """
        key = self._key(field)
        self._touch(key)
        self._filters.setdefault(key, {})[filter] = _as_params(params)
        return self

    def rule(self, field: Any, rule: Any, params: Any = None) -> Validation:
        """Add or overwrite a rule on a field.

            validation.rule("username", "not_empty").rule("username", "min_length", [4])
        """
        key = self._key(field)
        self._touch(key)
        self._rules.setdefault(key, {})[rule] = _as_params(params)
        return self

    def rule_set(self, field: Any, rules: Mapping[Any, Any]) -> Validation:
        for rule, params in rules.items():
            self.rule(field, rule, params)
        return self

    def callback(self, field: Any, callback: Callback) -> Validation:
        """Add a callback ``(validation, field, errors) -> errors``; adding it twice is a no-op."""
        if not callable(callback):
            raise InvalidCallbackError.build(f"Callback for field '{field}' is not callable",
                code=ErrorCode.E7005_INVALID_CALLBACK, origin="engine", field=str(field))
        key = self._key(field)
        self._touch(key)
        callbacks = self._callbacks.setdefault(key, [])
        if callback not in callbacks:
            callbacks.append(callback)
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _merged(self, expected: Sequence[str]) -> tuple[dict, dict, dict]:
        """Per-field working copies with wildcard entries folded in (field entries win)."""
        any_filters = self._filters.get(WILDCARD, {})
        any_rules = self._rules.get(WILDCARD, {})
        any_callbacks = self._callbacks.get(WILDCARD, [])

        filters, rules, callbacks = {}, {}, {}
        for name in expected:
            own_filters = self._filters.get(name, {})
            filters[name] = {**own_filters, **{k: v for k, v in any_filters.items() if k not in own_filters}}

            own_rules = self._rules.get(name, {})
            rules[name] = {**own_rules, **{k: v for k, v in any_rules.items() if k not in own_rules}}

            own_callbacks = self._callbacks.get(name, [])
            callbacks[name] = [*own_callbacks, *(c for c in any_callbacks if c not in own_callbacks)]
        return filters, rules, callbacks

    def check(self, errors: Mapping[str, str] | None = None) -> CheckResult:
        """Run filters, rules and callbacks over every expected field.

        Args:
            errors: optional error map to start from; callbacks and rules add to it.

        Returns:
            CheckResult; ``submitted`` is False (and nothing ran) when none of
            the expected fields carried a value.
        """
        profiler = self.collaborators.profiler if self.profiling else None
        token = profiler.start("Validation", "check") if profiler else None
        try:
            return self._check(dict(errors or {}))
        finally:
            if profiler:
                profiler.stop(token)

    def _check(self, errors: dict[str, str]) -> CheckResult:
        expected = list(self._labels)
        submitted = any(self._data.get(name) is not None for name in expected)

        log.debug("check_started", fields=len(expected), submitted=submitted)

        # The context now holds exactly the expected fields
        self._data = {name: self._data.get(name) for name in expected}

        if not submitted:
            self.errors = errors
            log.debug("check_not_submitted")
            return CheckResult(passed=False, errors=errors, submitted=False)

        filters, rules, callbacks = self._merged(expected)

        for name in expected:
            self._apply_filters(name, filters[name])

        context = RuleContext.over(self._data, self.collaborators)
        for name in expected:
            message = self._apply_rules(name, rules[name], context)
            if message is not None:
                errors[name] = message

        for name in expected:
            errors = self._run_callbacks(name, callbacks[name], errors)

        self.errors = errors
        log.debug("check_finished", passed=not errors, errors=len(errors))
        return CheckResult(passed=not errors, errors=errors, submitted=True)

    def _apply_filters(self, name: str, field_filters: Mapping[Any, tuple[Any, ...]]) -> None:
        value = self._data[name]
        if value is None or value == "":
            return
        for ident, params in field_filters.items():
            value = self.filter_registry.resolve(ident, name).apply(value, params)
            self._data[name] = value

    def _apply_rules(self, name: str, field_rules: Mapping[Any, tuple[Any, ...]], context: RuleContext) -> str | None:
        """Evaluate a field's rules; the first failure's message, or None."""
        value = self._data[name]
        for ident, params in field_rules.items():
            if ident != "not_empty" and (value is None or value == ""):
                continue
            predicate = self.rule_registry.resolve(ident, name)
            if not predicate.evaluate(value, params, context):
                log.debug("rule_failed", field=name, rule=predicate.name)
                spec = build_message(predicate.name, self._labels[name], params, self.message_table)
                return spec.render(self.collaborators.translator)
        return None

    def _run_callbacks(self, name: str, field_callbacks: Sequence[Callback], errors: dict[str, str]) -> dict[str, str]:
        for callback in field_callbacks:
            if name in errors:
                continue
            returned = callback(self, name, errors)
            if returned is None:
                continue
            if not isinstance(returned, Mapping):
                raise InvalidCallbackError.bad_return(callback, name, returned)
            if returned is not errors:
                log.debug("callback_replaced_errors", field=name, errors=len(returned))
            errors = dict(returned)
        return errors


def factory(values: Mapping[str, Any] | None = None, **options: Any) -> Validation:
    """Create a Validation over ``values``."""
    return Validation.factory(values, **options)
