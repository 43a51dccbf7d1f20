"""Built-in Filters

Value transformers applied before rules run. String filters leave
non-string values untouched; conversion filters (int, float, str) raise
on input they cannot convert, like the builtins they wrap.
"""
from __future__ import annotations

import re
from typing import Any

from .registry import FILTERS

builtin_filter = FILTERS.filter

_TAG = re.compile(r"<[^>]*>")


@builtin_filter("trim", builtin=True)
def trim(value: Any, chars: str | None = None) -> Any:
    return value.strip(chars) if isinstance(value, str) else value


@builtin_filter("ltrim", builtin=True)
def ltrim(value: Any, chars: str | None = None) -> Any:
    return value.lstrip(chars) if isinstance(value, str) else value


@builtin_filter("rtrim", builtin=True)
def rtrim(value: Any, chars: str | None = None) -> Any:
    return value.rstrip(chars) if isinstance(value, str) else value


_lower = lambda v: v.lower() if isinstance(v, str) else v
_upper = lambda v: v.upper() if isinstance(v, str) else v
_title = lambda v: v.title() if isinstance(v, str) else v
_normalize_whitespace = lambda v: " ".join(v.split()) if isinstance(v, str) else v
_strip_tags = lambda v: _TAG.sub("", v) if isinstance(v, str) else v

for _name, _fn in (
    ("lower", _lower),
    ("lowercase", _lower),
    ("strtolower", _lower),
    ("upper", _upper),
    ("uppercase", _upper),
    ("strtoupper", _upper),
    ("title", _title),
    ("normalize_whitespace", _normalize_whitespace),
    ("strip_tags", _strip_tags),
    ("int", int),
    ("float", float),
    ("str", str),
):
    FILTERS.register(_name, _fn, builtin=True)
