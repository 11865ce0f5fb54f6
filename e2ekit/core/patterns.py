"""
Literal-or-pattern text matchers.

Config files can only carry strings, so pattern-bearing fields are
normalized once at load time. Steps use an explicit form instead: a bare
string is a literal, ``{"pattern": "...", "flags": "i"}`` is a regular
expression.
"""

from __future__ import annotations

import re
from typing import Any, Union

TextMatch = Union[str, "re.Pattern[str]"]

_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


def compile_flags(flags: str) -> int:
    value = 0
    for ch in flags:
        if ch not in _FLAGS:
            raise ValueError(f"unsupported regex flag {ch!r} (use {', '.join(_FLAGS)})")
        value |= _FLAGS[ch]
    return value


def _compile(source: str, flags: int = 0) -> re.Pattern[str]:
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise ValueError(f"invalid pattern {source!r}: {e}") from e


def normalize_pattern(value: Any) -> re.Pattern[str] | None:
    """
    Coerce a config value into a compiled pattern.

    Strings are compiled, compiled patterns pass through, empty or absent
    values stay ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, re.Pattern):
        return value
    if isinstance(value, str):
        return _compile(value)
    if isinstance(value, dict) and "pattern" in value:
        return _compile(value["pattern"], compile_flags(value.get("flags", "")))
    raise ValueError(f"expected a string or pattern, got {type(value).__name__}")


def coerce_text_match(value: Any) -> TextMatch:
    """Step-side coercion: strings stay literal, pattern objects compile."""
    if isinstance(value, (str, re.Pattern)):
        return value
    if isinstance(value, dict):
        pattern = normalize_pattern(value)
        if pattern is not None:
            return pattern
    raise ValueError('expected a string or {"pattern": ..., "flags": ...}')


def as_pattern(value: TextMatch) -> re.Pattern[str]:
    """
    Treat a literal as a regular expression source.

    :raises ValueError: If the literal does not compile
    """
    if isinstance(value, re.Pattern):
        return value
    return _compile(value)


def contains_pattern(value: TextMatch) -> re.Pattern[str]:
    """A pattern that finds ``value`` anywhere, escaping literals."""
    if isinstance(value, re.Pattern):
        return value
    return re.compile(re.escape(value))


def matches(value: TextMatch, text: str) -> bool:
    """Substring test for literals, ``search`` for patterns."""
    if isinstance(value, re.Pattern):
        return value.search(text) is not None
    return value in text


def describe(value: TextMatch | None) -> str:
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return str(value)
