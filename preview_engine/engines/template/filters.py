"""
Runtime functions for translated templates, and SQL literal helpers.

``display_finalize`` is the Jinja2 ``finalize`` callback: every ``{{ }}``
output goes through it before (optional) HTML escaping, so values print the
way a JSON-minded template author expects (``true``, ``null`` -> empty,
``42`` rather than ``42.0``).

The ``_lookup``/``_pairs``/``_truthy``/``_raw`` globals are what the dialect
translator emits calls to; see ``dialect.py``.
"""

import json
import math
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from jinja2 import Undefined
from markupsafe import Markup

# Single-quote escape for SQL strings
_SQL_QUOTE_ESCAPE = str.maketrans({"'": "''"})


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


def _display_number(value: int | float) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
    return str(value)


def display_value(value: Any) -> str:
    """
    Text form of a template value.

    * ``None`` / undefined -> ``""``
    * ``bool`` -> ``"true"`` / ``"false"``
    * integral ``float`` -> no trailing ``.0``
    * ``list`` / ``tuple`` -> items joined with ``,``
    * mappings -> JSON
    * ``date`` / ``datetime`` -> ISO format
    """
    if value is None or isinstance(value, Undefined):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _display_number(value)
    if isinstance(value, (list, tuple)):
        return ",".join(display_value(v) for v in value)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str, ensure_ascii=False)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def display_finalize(value: Any) -> Any:
    """Jinja2 ``finalize`` callback. Strings (incl. Markup) pass through unchanged."""
    if isinstance(value, str):
        return value
    return display_value(value)


# ---------------------------------------------------------------------------
# Scope access (emitted by the dialect translator)
# ---------------------------------------------------------------------------


def lookup(scope: Any, *segments: str) -> Any:
    """
    Walk *segments* from *scope*: mapping keys, sequence indexes, ``length``.

    Missing steps give None. Object attributes are never read, so templates
    only see the JSON data they were handed.
    """
    value = scope
    for seg in segments:
        if value is None or isinstance(value, Undefined):
            return None
        if isinstance(value, Mapping):
            value = value.get(seg)
        elif isinstance(value, (list, tuple, str)):
            if seg == "length":
                value = len(value)
            elif isinstance(value, str):
                return None
            else:
                try:
                    value = value[int(seg)]
                except (ValueError, IndexError):
                    return None
        else:
            return None
    return value


def pairs(value: Any) -> list[tuple[Any, Any]]:
    """(key, item) pairs for ``{{#each}}``: index for sequences, key for mappings."""
    if isinstance(value, Mapping):
        return list(value.items())
    if isinstance(value, (list, tuple)):
        return list(enumerate(value))
    return []


def truthy(value: Any) -> bool:
    """Template truthiness: None, False, 0, "", and [] are false; {} is true."""
    if value is None or isinstance(value, Undefined):
        return False
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    if isinstance(value, Mapping):
        return True
    return bool(value)


def raw(value: Any) -> Markup:
    """``{{{ expr }}}``: display text marked safe so autoescape skips it."""
    return Markup(display_value(value))


# ---------------------------------------------------------------------------
# SQL literal helpers (for DB_QUERY previews)
# ---------------------------------------------------------------------------


def sql_string(value: Any) -> str:
    """
    Escape string for SQL. None -> 'NULL' (literal); otherwise single-quote escape.
    """
    if value is None:
        return "NULL"
    s = display_value(value).translate(_SQL_QUOTE_ESCAPE)
    return f"'{s}'"


def sql_int(value: Any) -> str:
    """
    Validate and format as integer. None -> 'NULL'.
    """
    if value is None or isinstance(value, bool):
        return "NULL"
    try:
        return str(int(value))
    except (TypeError, ValueError):
        return "NULL"


def sql_float(value: Any) -> str:
    """
    Validate and format as float. None -> 'NULL'.
    """
    if value is None or isinstance(value, bool):
        return "NULL"
    try:
        return str(float(value))
    except (TypeError, ValueError):
        return "NULL"


def sql_bool(value: Any) -> str:
    """
    Format as SQL boolean. None -> 'NULL'.
    """
    if value is None:
        return "NULL"
    return "TRUE" if truthy(value) else "FALSE"


def in_list(value: Any) -> str:
    """
    Turn a list into an SQL IN clause: (1, 2, 3). Empty -> (SELECT 1 WHERE 1=0).
    Elements are string-escaped if not int/float/bool/None.
    """
    if not isinstance(value, (list, tuple)) or not value:
        return "(SELECT 1 WHERE 1=0)"
    parts = []
    for v in value:
        if v is None:
            parts.append("NULL")
        elif isinstance(v, bool):
            parts.append("TRUE" if v else "FALSE")
        elif isinstance(v, (int, float)):
            parts.append(str(v))
        else:
            parts.append(sql_string(v))
    return "(" + ", ".join(parts) + ")"


def _escape_like(s: str) -> str:
    """Escape % and _ for use in LIKE patterns."""
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def sql_like(value: Any) -> str:
    """Escape % and _ and wrap in quotes. None -> 'NULL'."""
    if value is None:
        return "NULL"
    return sql_string(_escape_like(display_value(value)))


def sql_like_start(value: Any) -> str:
    """Prefix match: escape user input and add trailing %."""
    if value is None:
        return "NULL"
    return sql_string(_escape_like(display_value(value)) + "%")


def sql_like_end(value: Any) -> str:
    """Suffix match: escape user input and add leading %."""
    if value is None:
        return "NULL"
    return sql_string("%" + _escape_like(display_value(value)))


SQL_HELPERS: dict[str, Any] = {
    "sql_string": sql_string,
    "sql_int": sql_int,
    "sql_float": sql_float,
    "sql_bool": sql_bool,
    "in_list": in_list,
    "sql_like": sql_like,
    "sql_like_start": sql_like_start,
    "sql_like_end": sql_like_end,
}

# Globals the translated Jinja2 source refers to
TEMPLATE_GLOBALS: dict[str, Any] = {
    "_lookup": lookup,
    "_pairs": pairs,
    "_truthy": truthy,
    "_raw": raw,
}
