"""Null-safe predicate constructors for rule tables.

Every predicate built here returns False for absent, empty, or
unparseable values instead of raising.
"""

from __future__ import annotations

from carepoint.core.scoring.models import Observations, Predicate

_TRUTHY = {"yes", "y", "true", "1"}


def _num(val) -> float | None:
    """Safely convert to float, returning None for missing or non-numeric values."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str) and not val.strip():
        return None
    try:
        number = float(val)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def _text(val) -> str | None:
    """Normalize a category value to lowercase text, or None when empty."""
    if val is None:
        return None
    if isinstance(val, bool):
        return "yes" if val else "no"
    text = str(val).strip().lower()
    return text or None


def is_yes(field: str) -> Predicate:
    """Fires when a yes/no answer is affirmative."""
    def _predicate(obs: Observations) -> bool:
        return _text(obs.get(field)) in _TRUTHY
    return _predicate


def equals(field: str, value: str) -> Predicate:
    """Fires when a category answer matches ``value`` (case-insensitive)."""
    expected = value.strip().lower()

    def _predicate(obs: Observations) -> bool:
        return _text(obs.get(field)) == expected
    return _predicate


def equal_to(field: str, limit: float) -> Predicate:
    """Fires when a number equals ``limit``."""
    def _predicate(obs: Observations) -> bool:
        number = _num(obs.get(field))
        return number is not None and number == limit
    return _predicate


def greater_than(field: str, limit: float) -> Predicate:
    """Fires when a number is strictly above ``limit``."""
    def _predicate(obs: Observations) -> bool:
        number = _num(obs.get(field))
        return number is not None and number > limit
    return _predicate


def at_least(field: str, limit: float) -> Predicate:
    """Fires when a number is ``limit`` or more."""
    def _predicate(obs: Observations) -> bool:
        number = _num(obs.get(field))
        return number is not None and number >= limit
    return _predicate


def less_than(field: str, limit: float) -> Predicate:
    """Fires when a number is strictly below ``limit``."""
    def _predicate(obs: Observations) -> bool:
        number = _num(obs.get(field))
        return number is not None and number < limit
    return _predicate


def outside(field: str, low: float, high: float) -> Predicate:
    """Fires when a number falls below ``low`` or above ``high``."""
    def _predicate(obs: Observations) -> bool:
        number = _num(obs.get(field))
        return number is not None and (number < low or number > high)
    return _predicate


def between(field: str, low: float, high: float) -> Predicate:
    """Fires when a number lies in ``[low, high]``."""
    def _predicate(obs: Observations) -> bool:
        number = _num(obs.get(field))
        return number is not None and low <= number <= high
    return _predicate


def all_of(*predicates: Predicate) -> Predicate:
    """Fires when every predicate fires."""
    def _predicate(obs: Observations) -> bool:
        return all(p(obs) for p in predicates)
    return _predicate
