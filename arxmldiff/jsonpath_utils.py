"""JSONPath utilities for querying serialized arxmldiff reports."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError


@lru_cache(maxsize=256)
def _compile(path: str):
    try:
        return jsonpath_parse(path)
    except (JsonPathLexerError, JsonPathParserError) as e:
        raise ValueError(f"Invalid JSONPath expression '{path}': {e}")


class JSONPathMatcher:
    """Compiles and evaluates JSONPath expressions against report dicts."""

    @staticmethod
    def compile(path: str):
        """Compile a JSONPath expression; compiled expressions are cached."""
        return _compile(path)

    @classmethod
    def find_values(cls, data: Any, path: str) -> list[Any]:
        """Find all values matching a JSONPath expression."""
        expr = cls.compile(path)
        return [m.value for m in expr.find(data)]


def select(data: Any, path: str) -> list[Any]:
    """
    Select values from a report dict.

    Example:
        >>> select(report.to_dict(), "$.modified.messages[*].new.name")
        ['EngineStatus', 'BrakeStatus']
    """
    return JSONPathMatcher.find_values(data, path)
