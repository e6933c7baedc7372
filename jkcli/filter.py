"""Filter expressions over build metadata such as ``result=SUCCESS``."""

from __future__ import annotations

import math
import operator as _op
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any


class Operator(str, Enum):
    """Comparison operators supported in filters."""

    EQ = "="
    NEQ = "!="
    SUB = "~"
    REG = "~="
    PFX = "^"
    SFX = "$"
    GTE = ">="
    LTE = "<="
    GT = ">"
    LT = "<"


_ORDERED_OPERATORS = (
    Operator.GTE,
    Operator.LTE,
    Operator.NEQ,
    Operator.REG,
    Operator.SUB,
    Operator.EQ,
    Operator.PFX,
    Operator.SFX,
    Operator.GT,
    Operator.LT,
)

_SUPPORTED_KEYS = (
    "result",
    "status",
    "branch",
    "commit",
    "cause.type",
    "cause.user",
    "queue.id",
    "started",
    "duration",
)

_PREFIX_KEYS = ("param.", "artifact.", "cause.")

_SENSITIVE_HINTS = ("password", "secret", "token", "apikey", "api_key", "key", "pwd")

_COMPARATORS = {
    Operator.EQ: _op.eq,
    Operator.NEQ: _op.ne,
    Operator.GT: _op.gt,
    Operator.GTE: _op.ge,
    Operator.LT: _op.lt,
    Operator.LTE: _op.le,
}


class InvalidFilterError(ValueError):
    """Raised for a filter expression that cannot be parsed."""


class UnsupportedKeyError(InvalidFilterError):
    """Raised when a filter references an unknown key."""


@dataclass(frozen=True)
class Filter:
    """A single key/operator/value expression."""

    key: str
    operator: Operator
    value: str


def parse(raw: Iterable[str]) -> list[Filter]:
    """Parse raw expressions into filters; blank entries are skipped."""
    filters: list[Filter] = []
    for entry in raw:
        entry = entry.strip()
        if not entry:
            continue

        found: Operator | None = None
        key = value = ""
        for candidate in _ORDERED_OPERATORS:
            if candidate.value in entry:
                left, right = entry.split(candidate.value, 1)
                key, value = left.strip(), right.strip()
                found = candidate
                break

        if found is None or not key:
            raise InvalidFilterError(f"invalid filter expression: {entry!r}")

        _validate_key(key)
        filters.append(Filter(key=key, operator=found, value=value))
    return filters


def evaluate(
    ctx: Mapping[str, Any], filters: Iterable[Filter], allow_regex: bool = False
) -> bool:
    """Return True when every filter matches the values in ``ctx``."""
    for f in filters:
        if f.key not in ctx:
            return False
        if not _evaluate_single(ctx[f.key], f, allow_regex):
            return False
    return True


def _evaluate_single(actual: Any, f: Filter, allow_regex: bool) -> bool:
    if isinstance(actual, str):
        return _eval_string(actual, f, allow_regex)
    if isinstance(actual, bool):
        return _eval_bool(actual, f)
    if isinstance(actual, datetime):
        return _eval_time(actual, f)
    if isinstance(actual, timedelta):
        return _eval_duration(actual, f)
    if isinstance(actual, (int, float)):
        return _eval_float(float(actual), f)
    if isinstance(actual, (list, tuple)):
        return any(_eval_string(_format_entry(entry), f, allow_regex) for entry in actual)
    return False


def _format_entry(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, bool):
        return "true" if entry else "false"
    return str(entry)


def _parse_float(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"invalid number {text!r}")
    return float(text)


def _eval_string(actual: str, f: Filter, allow_regex: bool) -> bool:
    expected = f.value
    op = f.operator
    if op is Operator.EQ:
        return actual.casefold() == expected.casefold()
    if op is Operator.NEQ:
        return actual.casefold() != expected.casefold()
    if op is Operator.SUB:
        return expected.lower() in actual.lower()
    if op is Operator.PFX:
        return actual.lower().startswith(expected.lower())
    if op is Operator.SFX:
        return actual.lower().endswith(expected.lower())
    if op is Operator.REG:
        if not allow_regex:
            return expected.lower() in actual.lower()
        try:
            return re.search(expected, actual) is not None
        except re.error:
            return False
    if op in (Operator.GT, Operator.GTE, Operator.LT, Operator.LTE):
        try:
            return _COMPARATORS[op](_parse_float(actual), _parse_float(expected))
        except ValueError:
            return False
    return False


def _eval_time(actual: datetime, f: Filter) -> bool:
    try:
        expected = _parse_time_or_duration(f.value)
    except ValueError:
        return False
    if actual.tzinfo is None:
        actual = actual.astimezone()
    return _compare(actual, expected, f.operator)


def _eval_duration(actual: timedelta, f: Filter) -> bool:
    try:
        expected = parse_duration(f.value)
    except ValueError:
        return False
    return _compare(actual, expected, f.operator)


def _eval_float(actual: float, f: Filter) -> bool:
    try:
        expected = _parse_float(f.value)
    except ValueError:
        return False
    return _compare(actual, expected, f.operator)


_BOOL_VALUES = {"1": True, "t": True, "true": True, "0": False, "f": False, "false": False}


def _eval_bool(actual: bool, f: Filter) -> bool:
    expected = _BOOL_VALUES.get(f.value.lower())
    if expected is None:
        return False
    if f.operator is Operator.EQ:
        return actual == expected
    if f.operator is Operator.NEQ:
        return actual != expected
    return False


def _compare(actual: Any, expected: Any, op: Operator) -> bool:
    comparator = _COMPARATORS.get(op)
    return comparator(actual, expected) if comparator else False


_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(?:(Z)|([+-])(\d{2}):(\d{2}))"
)


def _parse_rfc3339(value: str) -> datetime:
    match = _RFC3339.fullmatch(value)
    if not match:
        raise ValueError(f"invalid time value {value!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, zulu, sign, tz_hours, tz_minutes = match.groups()[6:]
    micro = int((fraction or "")[:6].ljust(6, "0"))
    if zulu:
        tz = timezone.utc
    else:
        offset = timedelta(hours=int(tz_hours), minutes=int(tz_minutes))
        tz = timezone(-offset if sign == "-" else offset)
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)


def _parse_time_or_duration(value: str) -> datetime:
    try:
        return datetime.now(timezone.utc) - parse_duration(value)
    except ValueError:
        pass
    return _parse_rfc3339(value)


_GO_UNITS_NS = {
    "ns": 1.0,
    "us": 1e3,
    "µs": 1e3,
    "μs": 1e3,
    "ms": 1e6,
    "s": 1e9,
    "m": 60e9,
    "h": 3600e9,
}
_GO_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def _parse_unit_duration(text: str) -> timedelta:
    original = text
    sign = 1
    if text and text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {original!r}")
    total_ns = 0.0
    pos = 0
    while pos < len(text):
        match = _GO_PART.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration {original!r}")
        total_ns += float(match.group(1)) * _GO_UNITS_NS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * total_ns / 1000)


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``90m``, ``1h30m``, ``7d``, ``2w`` or raw milliseconds."""
    value = value.strip()
    if not value:
        raise ValueError("empty duration")

    normalized = value.lower()
    last = normalized[-1]
    if last == "d":
        return timedelta(days=_parse_float(normalized[:-1]))
    if last == "w":
        return timedelta(weeks=_parse_float(normalized[:-1]))

    if any(ch in normalized for ch in "hmsu"):
        return _parse_unit_duration(normalized)

    try:
        millis = _parse_float(normalized)
    except ValueError:
        raise ValueError(f"invalid duration {value!r}") from None
    if not math.isfinite(millis):
        raise ValueError(f"invalid duration {value!r}")
    return timedelta(milliseconds=int(millis))


def _validate_key(key: str) -> None:
    if key.startswith(_PREFIX_KEYS) or key in _SUPPORTED_KEYS:
        return
    raise UnsupportedKeyError(f"unsupported filter key: {key}")


def allowed_keys() -> list[str]:
    """Return the supported keys, including the prefix wildcards."""
    return [*_SUPPORTED_KEYS, "param.*", "artifact.*", "cause.*"]


def operators() -> list[str]:
    """Return the supported operators in matching order."""
    return [op.value for op in _ORDERED_OPERATORS]


def requires_artifacts(filters: Iterable[Filter]) -> bool:
    """Report whether any filter references artifact fields."""
    return any(f.key.startswith("artifact.") for f in filters)


def requires_parameters(filters: Iterable[Filter]) -> bool:
    """Report whether any filter references build parameters."""
    return any(f.key.startswith("param.") for f in filters)


def requires_causes(filters: Iterable[Filter]) -> bool:
    """Report whether any filter references build causes."""
    return any(f.key.startswith("cause.") for f in filters)


def is_likely_secret(name: str) -> bool:
    """Report whether a parameter name probably holds a secret."""
    lower = name.lower()
    return any(hint in lower for hint in _SENSITIVE_HINTS)