"""
Declarative field validation.

A form schema lists, per field, a tuple of Rule objects. Each rule is a
predicate plus the message shown when it fails. `validate()` runs them in
order and keeps only the first failure per field.

Rules other than `required` accept empty values, so optional fields are only
checked when the user filled them in.

This is advisory UX validation; the API server has the final word.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Mapping, Optional

from enrolldesk.model import parse_date

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[+]?[1-9][\d]{0,15}$")
COURSE_CODE_RE = re.compile(r"^[A-Z0-9]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

# (value, all form values, today) -> ok?
Check = Callable[[Any, Mapping[str, Any], date], bool]


@dataclass(frozen=True)
class Rule:
    check: Check
    message: str
    applies_to_empty: bool = False

    def failed(self, value: Any, values: Mapping[str, Any], today: date) -> bool:
        if is_empty(value) and not self.applies_to_empty:
            return False
        return not self.check(value, values, today)


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def required(message: str) -> Rule:
    return Rule(lambda v, _vals, _t: not is_empty(v), message, applies_to_empty=True)


def length(min_len: int | None = None, max_len: int | None = None, message: str = "") -> Rule:
    def check(value: Any, _vals: Mapping[str, Any], _t: date) -> bool:
        n = len(str(value).strip())
        if min_len is not None and n < min_len:
            return False
        if max_len is not None and n > max_len:
            return False
        return True

    return Rule(check, message)


def pattern(regex: re.Pattern[str], message: str) -> Rule:
    return Rule(lambda v, _vals, _t: regex.search(str(v).strip()) is not None, message)


def email(message: str = "Please enter a valid email") -> Rule:
    return pattern(EMAIL_RE, message)


def one_of(choices: tuple[str, ...], message: str) -> Rule:
    return Rule(lambda v, _vals, _t: str(v) in choices, message)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def int_between(low: int, high: int, message: str) -> Rule:
    def check(value: Any, _vals: Mapping[str, Any], _t: date) -> bool:
        n = _as_int(value)
        return n is not None and low <= n <= high

    return Rule(check, message)


def is_date(message: str = "Please enter a date as YYYY-MM-DD") -> Rule:
    return Rule(lambda v, _vals, _t: parse_date(v) is not None, message)


def not_before_today(message: str) -> Rule:
    def check(value: Any, _vals: Mapping[str, Any], today: date) -> bool:
        d = parse_date(value)
        return d is not None and d >= today

    return Rule(check, message)


def not_after_today(message: str) -> Rule:
    def check(value: Any, _vals: Mapping[str, Any], today: date) -> bool:
        d = parse_date(value)
        return d is not None and d <= today

    return Rule(check, message)


def years_ago(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        return today.replace(year=today.year - years, day=28)


def age_between(min_years: int, max_years: int, message: str) -> Rule:
    """
    The date (a birth date) must lie between today-max_years and today-min_years.
    """

    def check(value: Any, _vals: Mapping[str, Any], today: date) -> bool:
        d = parse_date(value)
        if d is None:
            return False
        return years_ago(today, max_years) <= d <= years_ago(today, min_years)

    return Rule(check, message)


def after_field(other: str, message: str) -> Rule:
    """
    Cross-field rule: this date must be strictly after `other`.
    Passes when `other` is missing/invalid (that field reports its own error).
    """

    def check(value: Any, values: Mapping[str, Any], _t: date) -> bool:
        mine = parse_date(value)
        theirs = parse_date(values.get(other))
        if theirs is None:
            return True
        return mine is not None and mine > theirs

    return Rule(check, message)


def validate(
    values: Mapping[str, Any],
    rules: Mapping[str, tuple[Rule, ...]],
    today: date | None = None,
) -> dict[str, str]:
    """
    Return {field: message} for every field whose rules fail (first failure only).
    Empty dict means the values are acceptable.
    """
    today = today or date.today()
    errors: dict[str, str] = {}
    for name, field_rules in rules.items():
        value = values.get(name)
        for rule in field_rules:
            if rule.failed(value, values, today):
                errors[name] = rule.message
                break
    return errors
