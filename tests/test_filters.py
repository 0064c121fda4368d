import math
from datetime import date, datetime, timezone

import pytest

from clinicrm.modules.saved_views.filters import (
    apply_filter_config, match_condition, row_matches, sort_rows, to_number, to_text,
)
from clinicrm.modules.saved_views.schemas import FilterCondition, FilterConfig


def cond(field, operator, value=None, value_end=None):
    return FilterCondition(field=field, operator=operator, value=value, value_end=value_end)


def config(*conditions, logic="and"):
    return FilterConfig(conditions=list(conditions), logic=logic)


ROWS = [
    {"id": 1, "status": "open", "amount": 100, "name": "Alpha Clinic", "closed": None},
    {"id": 2, "status": "won", "amount": 250.5, "name": "beta dental", "closed": "2024-03-01"},
    {"id": 3, "status": "lost", "amount": 0, "name": "", "closed": ""},
    {"id": 4, "status": "open", "name": "Gamma"},
]


def test_equals_selects_matching_status():
    rows = [{"status": "open"}, {"status": "won"}]
    out = apply_filter_config(rows, config(cond("status", "equals", "open")))
    assert out == [{"status": "open"}]


def test_empty_conditions_return_all_rows():
    assert apply_filter_config(ROWS, config()) == ROWS
    assert apply_filter_config(ROWS, None) == ROWS


def test_conditions_without_field_are_ignored():
    assert apply_filter_config(ROWS, config(cond("", "equals", "nothing"))) == ROWS


def test_equals_compares_string_forms():
    assert match_condition({"amount": 100}, cond("amount", "equals", "100"))
    assert match_condition({"amount": 100.0}, cond("amount", "equals", "100"))
    assert match_condition({"active": True}, cond("active", "equals", True))
    assert not match_condition({"active": False}, cond("active", "equals", True))
    assert match_condition({"status": "open"}, cond("status", "notEquals", "won"))


@pytest.mark.parametrize("target", ["clinic", "CLINIC", "a", "zzz", "100"])
def test_contains_and_not_contains_are_complements(target):
    for row in ROWS:
        for field in ("name", "amount", "status", "missing"):
            c = match_condition(row, cond(field, "contains", target))
            n = match_condition(row, cond(field, "notContains", target))
            assert c != n


def test_contains_is_case_insensitive_and_coerces_numbers():
    assert match_condition({"name": "Alpha Clinic"}, cond("name", "contains", "alpha"))
    assert match_condition({"amount": 12345}, cond("amount", "contains", "234"))
    assert not match_condition({"name": "Alpha"}, cond("name", "contains", "beta"))


@pytest.mark.parametrize("a", [9, 10, 15, 20, 21])
def test_between_is_inclusive(a):
    holds = match_condition({"n": a}, cond("n", "between", 10, 20))
    assert holds == (10 <= a <= 20)


def test_between_with_missing_bound_never_holds():
    assert not match_condition({"n": 5}, cond("n", "between", 1, None))


def test_numeric_comparisons():
    assert match_condition({"n": 5}, cond("n", "greaterThan", "4"))
    assert not match_condition({"n": 5}, cond("n", "greaterThan", 5))
    assert match_condition({"n": "3.5"}, cond("n", "lessThan", 4))
    # None and blank read as 0, a missing key or unreadable text as NaN
    assert match_condition({"n": None}, cond("n", "lessThan", 4))
    assert match_condition({"n": "  "}, cond("n", "lessThan", 1))
    assert not match_condition({"n": "abc"}, cond("n", "greaterThan", 0))
    assert not match_condition({"n": "abc"}, cond("n", "lessThan", 0))
    assert not match_condition({}, cond("n", "lessThan", 4))
    assert not match_condition({}, cond("n", "greaterThan", -4))
    assert match_condition({"n": "0x10"}, cond("n", "greaterThan", 15))


def test_comparison_without_target_never_holds():
    assert not match_condition({"n": 5}, cond("n", "greaterThan"))
    assert not match_condition({"n": -5}, cond("n", "lessThan"))


def test_before_and_after_on_dates():
    row = {"closed": datetime(2024, 3, 1, tzinfo=timezone.utc)}
    assert match_condition(row, cond("closed", "after", date(2024, 2, 28)))
    assert match_condition(row, cond("closed", "before", datetime(2024, 3, 2, tzinfo=timezone.utc)))
    assert not match_condition(row, cond("closed", "before", date(2024, 3, 1)))
    assert match_condition(row, cond("closed", "after", 1709251199000))
    # date strings are not numbers
    assert not match_condition({"closed": "2024-03-01"}, cond("closed", "after", "2024-02-28"))
    assert not match_condition({"closed": "2024-03-01"}, cond("closed", "before", "2024-03-02"))


def test_is_empty_and_is_not_empty():
    assert match_condition({"x": None}, cond("x", "isEmpty"))
    assert match_condition({"x": ""}, cond("x", "isEmpty"))
    assert match_condition({}, cond("x", "isEmpty"))
    assert not match_condition({"x": 0}, cond("x", "isEmpty"))
    assert match_condition({"x": 0}, cond("x", "isNotEmpty"))
    assert not match_condition({}, cond("x", "isNotEmpty"))


def test_unknown_operator_passes(caplog):
    with caplog.at_level("WARNING"):
        assert match_condition({"x": 1}, cond("x", "startsWith", "z"))
    assert "startsWith" in caplog.text


def test_and_is_intersection_or_is_union():
    a = cond("status", "equals", "open")
    b = cond("amount", "greaterThan", 50)
    only_a = {r["id"] for r in apply_filter_config(ROWS, config(a))}
    only_b = {r["id"] for r in apply_filter_config(ROWS, config(b))}
    both = {r["id"] for r in apply_filter_config(ROWS, config(a, b, logic="and"))}
    either = {r["id"] for r in apply_filter_config(ROWS, config(a, b, logic="or"))}
    assert both == only_a & only_b == {1}
    assert either == only_a | only_b == {1, 2, 4}


def test_row_matches_with_only_blank_fields_passes():
    assert row_matches({"a": 1}, config(cond("", "equals", 2), logic="or"))


def test_sort_rows_puts_missing_values_last():
    out = sort_rows(ROWS, "amount", "desc")
    assert [r["id"] for r in out] == [2, 1, 3, 4]
    out = sort_rows(ROWS, "name", "asc")
    assert [r["id"] for r in out] == [1, 2, 4, 3]
    assert sort_rows(ROWS, None) == ROWS


def test_coercion_helpers():
    assert to_text(None) == ""
    assert to_text(2.0) == "2"
    assert to_text(["a", 1]) == "a,1"
    assert to_text(date(2024, 1, 5)) == "2024-01-05"
    assert to_number("") == 0.0
    assert to_number(None) == 0.0
    assert to_number(True) == 1.0
    assert to_number(" 1e3 ") == 1000.0
    assert to_number(".5") == 0.5
    assert to_number("-Infinity") == -math.inf
    assert to_number("0b101") == 5.0
    assert to_number([]) == 0.0
    assert to_number(["7"]) == 7.0
    assert to_number(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000.0


@pytest.mark.parametrize("text", ["1_000", "nan", "inf", "infinity", "1970-01-01", "12px", "-0x10", "1 2", "\u0661"])
def test_text_that_is_not_a_number(text):
    assert math.isnan(to_number(text))
