"""Shared fixtures: fake collaborators and a Validation factory wired to them."""
import logging
from typing import Any, Callable

import pytest
import structlog

from fieldcheck.config import BUNDLED_TABLES
from fieldcheck.logging import LIBRARY_LOGGER, LoggerRegistry
from fieldcheck.validation import (
    CatalogTranslator,
    Collaborators,
    FixedLocale,
    Validation,
    YamlConfigSource,
    reset_messages,
)


class FakeResolver:
    """MX answers from a dict; raises for domains mapped to an exception."""

    def __init__(self, answers: dict[str, Any] | None = None):
        self.answers = answers or {}
        self.lookups: list[str] = []

    def has_mx_record(self, domain: str) -> bool:
        self.lookups.append(domain)
        answer = self.answers.get(domain, False)
        if isinstance(answer, Exception):
            raise answer
        return bool(answer)


class RecordingProfiler:
    def __init__(self):
        self.events: list[tuple[str, str]] = []

    def start(self, name: str, group: str = "") -> str:
        self.events.append(("start", name))
        return name

    def stop(self, handle: str) -> None:
        self.events.append(("stop", handle))


class BrokenLocale:
    def decimal_separator(self) -> str:
        raise RuntimeError("locale database unavailable")


@pytest.fixture(autouse=True)
def _fresh_messages():
    yield
    reset_messages()


@pytest.fixture
def default_logging():
    """Put the library logger and structlog back the way import left them."""
    lib_logger = logging.getLogger(LIBRARY_LOGGER)
    saved = (lib_logger.handlers[:], lib_logger.level, lib_logger.propagate)
    yield lib_logger
    lib_logger.handlers, lib_logger.level, lib_logger.propagate = saved
    LoggerRegistry._loggers.clear()
    structlog.reset_defaults()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver({"example.com": True, "broken.test": TimeoutError("dns timeout")})


@pytest.fixture
def profiler() -> RecordingProfiler:
    return RecordingProfiler()


@pytest.fixture
def collaborators(resolver, profiler) -> Collaborators:
    return Collaborators(
        translator=CatalogTranslator(),
        config=YamlConfigSource(BUNDLED_TABLES),
        resolver=resolver,
        profiler=profiler,
        locale=FixedLocale("."),
    )


@pytest.fixture
def make_validation(collaborators) -> Callable[..., Validation]:
    """Build a Validation over ``values`` using the fake collaborators."""

    def _make(values: dict[str, Any] | None = None, **options: Any) -> Validation:
        options.setdefault("collaborators", collaborators)
        options.setdefault("profiling", False)
        return Validation.factory(values, **options)

    return _make
