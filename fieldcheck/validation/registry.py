"""Rule and Filter Registries

Maps identifiers to implementations. A rule or filter identifier given to
Validation.rule()/filter() resolves, in order, to:

1. a built-in (registered by fieldcheck itself)
2. a name registered by the application (register_rule / @rule_function)
3. a callable passed directly as the identifier
4. a dotted import path, "package.module:function" or "package.module.function"

Anything else is a configuration fault (UnknownRuleError / UnknownFilterError).

Predicates declare the services they need through ``uses``; the engine
hands them over as keyword arguments when it evaluates the rule:

- "fields": read-only mapping of the current field values
- "translator", "config", "resolver", "profiler", "locale": collaborators
"""
from __future__ import annotations

import importlib
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Generic, Hashable, Mapping, Sequence, TypeVar

from fieldcheck.errors import ConfigurationError, ErrorCode, UnknownFilterError, UnknownRuleError

from .collaborators import Collaborators

SERVICES = frozenset({"fields", "translator", "config", "resolver", "profiler", "locale"})

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RuleContext:
    """What a predicate may see besides its value and parameters."""
    fields: Mapping[str, Any]
    collaborators: Collaborators

    @classmethod
    def over(cls, data: dict[str, Any], collaborators: Collaborators) -> RuleContext:
        return cls(fields=MappingProxyType(data), collaborators=collaborators)

    def service(self, name: str) -> Any:
        if name == "fields":
            return self.fields
        return getattr(self.collaborators, name)


@dataclass(frozen=True, slots=True)
class Predicate:
    """A named rule: ``fn(value, *params, **services) -> bool``."""
    name: str
    fn: Callable[..., Any]
    uses: frozenset[str] = frozenset()
    builtin: bool = False

    def evaluate(self, value: Any, params: Sequence[Any], context: RuleContext) -> bool:
        services = {name: context.service(name) for name in self.uses}
        return bool(self.fn(value, *params, **services))


@dataclass(frozen=True, slots=True)
class Filter:
    """A named value transformation: ``fn(value, *params) -> new value``."""
    name: str
    fn: Callable[..., Any]
    builtin: bool = False

    def apply(self, value: Any, params: Sequence[Any]) -> Any:
        return self.fn(value, *params)


def import_path(path: str) -> Callable[..., Any] | None:
    """Resolve "pkg.mod:attr" or "pkg.mod.attr" to a callable, None if it does not exist."""
    if ":" in path:
        module_name, _, attr = path.partition(":")
    elif "." in path:
        module_name, _, attr = path.rpartition(".")
    else:
        return None

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError:
        return None

    for part in attr.split("."):
        target = getattr(target, part, None)
        if target is None:
            return None
    return target if callable(target) else None


class _Registry(Generic[T]):
    kind = "entry"

    def __init__(self):
        self._builtins: dict[str, T] = {}
        self._external: dict[str, T] = {}
        self._resolved: dict[Hashable, T] = {}

    def _make(self, name: str, fn: Callable[..., Any], builtin: bool, **options: Any) -> T:
        raise NotImplementedError

    def _unknown(self, ident: Any, field: str | None, cause: Exception | None = None) -> Exception:
        raise NotImplementedError

    def _add(self, name: str, fn: Callable[..., Any], *, builtin: bool = False, **options: Any) -> T:
        if not callable(fn):
            raise ConfigurationError.build(f"{self.kind.capitalize()} '{name}' must be callable",
                code=ErrorCode.E7000_CONFIG_GENERIC, origin="registry", name=name)
        if not builtin and name in self._builtins:
            raise ConfigurationError.build(f"Cannot replace built-in {self.kind} '{name}'",
                code=ErrorCode.E7000_CONFIG_GENERIC, origin="registry", name=name)
        entry = self._make(name, fn, builtin, **options)
        (self._builtins if builtin else self._external)[name] = entry
        self._resolved.pop(name, None)
        return entry

    def unregister(self, name: str) -> None:
        """Remove an application-registered entry. Built-ins stay."""
        self._external.pop(name, None)
        self._resolved.pop(name, None)

    def get(self, name: str) -> T | None:
        return self._builtins.get(name) or self._external.get(name)

    def names(self, *, builtin_only: bool = False) -> list[str]:
        if builtin_only:
            return list(self._builtins)
        return [*self._builtins, *self._external]

    def __contains__(self, name: object) -> bool:
        return name in self._builtins or name in self._external

    def resolve(self, ident: Any, field: str | None = None) -> T:
        """Turn a rule/filter identifier into an implementation or fail loudly."""
        if isinstance(ident, str):
            if (entry := self.get(ident)) is not None:
                return entry
            if ident in self._resolved:
                return self._resolved[ident]
            try:
                fn = import_path(ident)
            except Exception as exc:
                raise self._unknown(ident, field, exc) from exc
            if fn is None:
                raise self._unknown(ident, field)
            entry = self._make(ident, fn, False)
            self._resolved[ident] = entry
            return entry

        if callable(ident):
            return self._make(getattr(ident, "__name__", repr(ident)), ident, False)

        raise self._unknown(ident, field)


class RuleRegistry(_Registry[Predicate]):
    kind = "rule"

    def _make(self, name: str, fn: Callable[..., Any], builtin: bool, uses: Sequence[str] = ()) -> Predicate:
        unknown = set(uses) - SERVICES
        if unknown:
            raise ConfigurationError.build(f"Rule '{name}' asks for unknown services: {', '.join(sorted(unknown))}",
                code=ErrorCode.E7000_CONFIG_GENERIC, origin="registry", rule=name)
        return Predicate(name=name, fn=fn, uses=frozenset(uses), builtin=builtin)

    def _unknown(self, ident: Any, field: str | None, cause: Exception | None = None) -> Exception:
        return UnknownRuleError.for_rule(str(ident), field, cause)

    def register(self, name: str, fn: Callable[..., Any], *, uses: Sequence[str] = (), builtin: bool = False) -> Predicate:
        return self._add(name, fn, builtin=builtin, uses=uses)

    def rule(self, name: str | None = None, *, uses: Sequence[str] = (),
             builtin: bool = False) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of register(); the function is returned unchanged."""
        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or fn.__name__, fn, uses=uses, builtin=builtin)
            return fn
        return decorator


class FilterRegistry(_Registry[Filter]):
    kind = "filter"

    def _make(self, name: str, fn: Callable[..., Any], builtin: bool) -> Filter:
        return Filter(name=name, fn=fn, builtin=builtin)

    def _unknown(self, ident: Any, field: str | None, cause: Exception | None = None) -> Exception:
        return UnknownFilterError.for_filter(str(ident), field, cause)

    def register(self, name: str, fn: Callable[..., Any], *, builtin: bool = False) -> Filter:
        return self._add(name, fn, builtin=builtin)

    def filter(self, name: str | None = None, *, builtin: bool = False) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or fn.__name__, fn, builtin=builtin)
            return fn
        return decorator


RULES = RuleRegistry()
FILTERS = FilterRegistry()


def register_rule(name: str, fn: Callable[..., Any], *, uses: Sequence[str] = ()) -> Predicate:
    """Register an application predicate under ``name``."""
    return RULES.register(name, fn, uses=uses)


def rule_function(name: str | None = None, *, uses: Sequence[str] = ()) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator registering an application predicate.

    Usage:
        @rule_function("even")
        def is_even(value) -> bool:
            return int(value) % 2 == 0
    """
    return RULES.rule(name, uses=uses)


def register_filter(name: str, fn: Callable[..., Any]) -> Filter:
    """Register an application filter under ``name``."""
    return FILTERS.register(name, fn)


def filter_function(name: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    return FILTERS.filter(name)
