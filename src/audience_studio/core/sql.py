"""Quoting and escaping for SQL text sent to DuckDB.

Every identifier or literal that is interpolated into SQL text goes
through this module. Filter values are normally bound as parameters;
inline rendering exists for the string form of compiled predicates and
for statements DuckDB cannot parameterize (table function arguments,
dynamic column lists).
"""

from __future__ import annotations

import math
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

LIKE_ESCAPE = "\\"


def quote_identifier(name: str) -> str:
    """Quote an identifier, doubling embedded double quotes."""
    if "\x00" in name:
        raise ValueError("Identifier contains a NUL byte")
    return '"' + name.replace('"', '""') + '"'


def quote_string(value: str) -> str:
    """Quote a string literal, doubling embedded single quotes."""
    if "\x00" in value:
        raise ValueError("String literal contains a NUL byte")
    return "'" + value.replace("'", "''") + "'"


def quote_literal(value: Any) -> str:
    """Render a Python scalar as a DuckDB literal.

    Raises:
        ValueError: For non-finite floats.
        TypeError: For values with no literal form.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Non-finite number has no SQL literal: {value}")
        return repr(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Non-finite number has no SQL literal: {value}")
        return str(value)
    if isinstance(value, datetime | date | time):
        return quote_string(value.isoformat())
    if isinstance(value, str):
        return quote_string(value)
    raise TypeError(f"Cannot render {type(value).__name__} as a SQL literal")


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
