"""External Collaborators

Everything the engine needs from the outside world, expressed as small
protocols with default implementations:

- Translator: turns a message template plus substitutions into text
- ConfigSource: hands out domain tables (credit card types) by key
- MxResolver: answers "does this domain have an MX record"
- Profiler: brackets a named operation with start/stop
- LocaleProvider: reports the active decimal separator

Applications swap any of them by passing a Collaborators bundle to
Validation.factory().
"""
from __future__ import annotations

import locale as _locale
import re
import time
from dataclasses import dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Protocol, runtime_checkable

import dns.exception
import dns.resolver
import yaml

from fieldcheck.config import Settings, get_settings
from fieldcheck.errors import ConfigurationError, ErrorCode, TableNotFoundError
from fieldcheck.logging import config_logger, rules_logger

log = rules_logger()


# ============================================================================
# Protocols
# ============================================================================

@runtime_checkable
class Translator(Protocol):
    def translate(self, text: str, substitutions: Mapping[str, str] | None = None) -> str: ...


@runtime_checkable
class ConfigSource(Protocol):
    def get_table(self, key: str) -> Mapping[str, Any]: ...


@runtime_checkable
class MxResolver(Protocol):
    def has_mx_record(self, domain: str) -> bool: ...


@runtime_checkable
class Profiler(Protocol):
    def start(self, name: str, group: str = "") -> Any: ...

    def stop(self, handle: Any) -> None: ...


@runtime_checkable
class LocaleProvider(Protocol):
    def decimal_separator(self) -> str: ...


# ============================================================================
# Translation
# ============================================================================

class CatalogTranslator:
    """Looks text up in a catalog, then replaces placeholders in one pass.

    Replacement works like strtr: longer keys win over their prefixes and
    replaced text is never scanned again.
    """

    def __init__(self, catalog: Mapping[str, str] | None = None, locale: str = "en"):
        self.catalog = dict(catalog or {})
        self.locale = locale

    def translate(self, text: str, substitutions: Mapping[str, str] | None = None) -> str:
        text = self.catalog.get(text, text)
        if not substitutions:
            return text
        keys = sorted(substitutions, key=len, reverse=True)
        pattern = re.compile("|".join(re.escape(k) for k in keys))
        return pattern.sub(lambda m: str(substitutions[m.group(0)]), text)


# ============================================================================
# Configuration tables
# ============================================================================

class YamlConfigSource:
    """Loads ``<directory>/<key>.yaml`` once per key."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)
        self._tables: dict[str, dict[str, Any]] = {}

    def get_table(self, key: str) -> Mapping[str, Any]:
        if key not in self._tables:
            self._tables[key] = self._load(key)
        return self._tables[key]

    def _load(self, key: str) -> dict[str, Any]:
        candidates = [self.directory / f"{key}.yaml", self.directory / f"{key}.yml"]
        path = next((p for p in candidates if p.is_file()), None)
        if path is None:
            raise TableNotFoundError.for_key(key, [str(p) for p in candidates])

        try:
            with path.open(encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigurationError.build(f"Configuration table '{key}' is not valid YAML",
                code=ErrorCode.E7004_INVALID_TABLE, origin="config", cause=exc, path=str(path)) from exc

        if not isinstance(data, dict):
            raise ConfigurationError.build(f"Configuration table '{key}' must be a mapping",
                code=ErrorCode.E7004_INVALID_TABLE, origin="config", path=str(path))

        config_logger().debug("table_loaded", key=key, path=str(path), entries=len(data))
        return data


class StaticConfigSource:
    """In-memory tables, mostly for tests and embedded use."""

    def __init__(self, tables: Mapping[str, Mapping[str, Any]]):
        self.tables = {k: dict(v) for k, v in tables.items()}

    def get_table(self, key: str) -> Mapping[str, Any]:
        if key not in self.tables:
            raise TableNotFoundError.for_key(key, ["<static>"])
        return self.tables[key]


# ============================================================================
# DNS
# ============================================================================

class DnsMxResolver:
    """MX lookups through dnspython.

    NXDOMAIN and empty answers mean "no MX". Timeouts and resolver failures
    are raised so callers can tell "no record" from "could not ask".
    """

    def __init__(self, lifetime: float | None = 5.0):
        self.lifetime = lifetime

    def has_mx_record(self, domain: str) -> bool:
        try:
            answer = dns.resolver.resolve(domain, "MX", lifetime=self.lifetime)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return False
        except dns.exception.DNSException:
            log.warning("mx_lookup_failed", domain=domain)
            raise
        return len(answer) > 0


# ============================================================================
# Profiling
# ============================================================================

@dataclass(slots=True)
class ProfileToken:
    name: str
    group: str
    started: float = field(default_factory=time.perf_counter)


class LoggingProfiler:
    """Reports operation timings through structlog."""

    def __init__(self):
        self.log = rules_logger().bind(component="profiler")

    def start(self, name: str, group: str = "") -> ProfileToken:
        self.log.debug("profile_started", operation=name, group=group)
        return ProfileToken(name=name, group=group)

    def stop(self, handle: ProfileToken) -> None:
        duration_ms = (time.perf_counter() - handle.started) * 1000
        self.log.debug("profile_stopped", operation=handle.name, group=handle.group,
            duration_ms=round(duration_ms, 3))


class NullProfiler:
    def start(self, name: str, group: str = "") -> None:
        return None

    def stop(self, handle: Any) -> None:
        return None


# ============================================================================
# Locale
# ============================================================================

class SystemLocale:
    """Decimal separator of the process locale, unless overridden."""

    def __init__(self, override: str | None = None):
        self.override = override

    def decimal_separator(self) -> str:
        if self.override:
            return self.override
        return _locale.localeconv()["decimal_point"]


class FixedLocale:
    def __init__(self, separator: str = "."):
        self.separator = separator

    def decimal_separator(self) -> str:
        return self.separator


# ============================================================================
# Bundle
# ============================================================================

@dataclass(frozen=True, slots=True)
class Collaborators:
    """The set of external services one Validation talks to."""
    translator: Translator
    config: ConfigSource
    resolver: MxResolver
    profiler: Profiler
    locale: LocaleProvider

    @classmethod
    def from_settings(cls, settings: Settings) -> Collaborators:
        return cls(
            translator=CatalogTranslator(locale=settings.LOCALE),
            config=YamlConfigSource(settings.tables_dir),
            resolver=DnsMxResolver(),
            profiler=LoggingProfiler(),
            locale=SystemLocale(settings.DECIMAL_SEPARATOR),
        )

    def replace(self, **changes: Any) -> Collaborators:
        return replace(self, **changes)


@lru_cache
def default_collaborators() -> Collaborators:
    return Collaborators.from_settings(get_settings())
