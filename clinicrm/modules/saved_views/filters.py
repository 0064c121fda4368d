"""In-memory evaluation of saved-view filter configurations.

Coercion follows the string/number rules the table UI uses:
equality and substring checks compare string forms, and ordering checks
compare numbers read the way JavaScript `Number()` reads them. A missing
key is NaN, None and blank strings are 0, and NaN never satisfies an
ordering check.
"""
import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from clinicrm.modules.saved_views.schemas import FilterCondition, FilterConfig

log = logging.getLogger(__name__)

OPERATORS = (
    "equals", "notEquals", "contains", "notContains",
    "greaterThan", "lessThan", "between",
    "isEmpty", "isNotEmpty", "before", "after",
)

_MISSING = object()

_DECIMAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_PREFIXED = re.compile(r"0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
_BASES = {"x": 16, "o": 8, "b": 2}

def to_text(value: Any) -> str:
    if value is None or value is _MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(v) for v in value)
    return str(value)

def _epoch_ms(value: date | datetime) -> float:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000

def _parse_number(s: str) -> float:
    s = s.strip()
    if not s:
        return 0.0
    if _DECIMAL.fullmatch(s):
        return float(s)
    if s in ("Infinity", "+Infinity"):
        return math.inf
    if s == "-Infinity":
        return -math.inf
    m = _PREFIXED.fullmatch(s)
    if m:
        digits = m.group(1)
        try:
            return float(int(digits[1:], _BASES[digits[0].lower()]))
        except OverflowError:
            return math.inf
    return math.nan

def to_number(value: Any) -> float:
    if value is _MISSING:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, (datetime, date)):
        return _epoch_ms(value)
    if isinstance(value, str):
        return _parse_number(value)
    if isinstance(value, (list, tuple)):
        return _parse_number(to_text(value))
    return math.nan

def is_empty(value: Any) -> bool:
    return value is _MISSING or value is None or value == ""

def match_condition(row: Mapping[str, Any], condition: FilterCondition) -> bool:
    value = row.get(condition.field, _MISSING)
    # stored conditions keep unset bounds as None, which stands for "no value given"
    target = _MISSING if condition.value is None else condition.value
    target_end = _MISSING if condition.value_end is None else condition.value_end
    op = condition.operator

    if op == "equals":
        return to_text(value) == to_text(target)
    if op == "notEquals":
        return to_text(value) != to_text(target)
    if op == "contains":
        return to_text(target).lower() in to_text(value).lower()
    if op == "notContains":
        return to_text(target).lower() not in to_text(value).lower()
    if op in ("greaterThan", "after"):
        return to_number(value) > to_number(target)
    if op in ("lessThan", "before"):
        return to_number(value) < to_number(target)
    if op == "between":
        n = to_number(value)
        return to_number(target) <= n <= to_number(target_end)
    if op == "isEmpty":
        return is_empty(value)
    if op == "isNotEmpty":
        return not is_empty(value)
    # Unknown operators let the row through.
    log.warning("Unknown filter operator %r on field %r; condition ignored", op, condition.field)
    return True

def row_matches(row: Mapping[str, Any], config: FilterConfig) -> bool:
    results = [match_condition(row, c) for c in config.conditions if c.field]
    if not results:
        return True
    if config.logic == "and":
        return all(results)
    return any(results)

def apply_filter_config(rows: Sequence[Mapping[str, Any]], config: FilterConfig | None) -> list:
    if config is None or not config.conditions:
        return list(rows)
    return [row for row in rows if row_matches(row, config)]

def _sort_key(value: Any) -> tuple:
    if isinstance(value, (int, float, datetime, date)) and not isinstance(value, bool):
        return (0, to_number(value), "")
    return (1, 0.0, to_text(value).lower())

def sort_rows(rows: Iterable[Mapping[str, Any]], field: str | None, direction: str | None = "asc") -> list:
    """Stable sort on one field; rows without a value always go last."""
    rows = list(rows)
    if not field:
        return rows
    present = [r for r in rows if not is_empty(r.get(field, _MISSING))]
    absent = [r for r in rows if is_empty(r.get(field, _MISSING))]
    present.sort(key=lambda r: _sort_key(r[field]), reverse=(direction == "desc"))
    return present + absent
