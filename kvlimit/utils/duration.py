"""Parse human-readable durations ("10s", "2 hrs", "1.5m") into milliseconds."""

from __future__ import annotations

import re
from decimal import Decimal

from kvlimit.core.errors import InvalidDurationError, UnrecognizedUnitError

_DURATION_RE = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))\s*([a-z]+)\s*$", re.IGNORECASE)

MILLISECOND = 1
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DAY = 24 * HOUR

UNIT_FACTORS: dict[str, int] = {
    "ms": MILLISECOND,
    "msec": MILLISECOND,
    "msecs": MILLISECOND,
    "millisecond": MILLISECOND,
    "milliseconds": MILLISECOND,
    "s": SECOND,
    "sec": SECOND,
    "secs": SECOND,
    "second": SECOND,
    "seconds": SECOND,
    "m": MINUTE,
    "min": MINUTE,
    "mins": MINUTE,
    "minute": MINUTE,
    "minutes": MINUTE,
    "h": HOUR,
    "hr": HOUR,
    "hrs": HOUR,
    "hour": HOUR,
    "hours": HOUR,
    "d": DAY,
    "day": DAY,
    "days": DAY,
}


def ms(duration: str) -> int:
    """Convert a duration expression into an integer number of milliseconds.

    The expression is a signed decimal magnitude followed by a unit, with
    optional whitespace in between. Units are case-insensitive and accept
    singular or plural spellings (see ``UNIT_FACTORS``). Fractional
    milliseconds are truncated toward zero.

    Args:
        duration: Expression such as ``"10s"``, ``"2 hrs"`` or ``"1.5m"``.

    Returns:
        The duration in milliseconds.

    Raises:
        InvalidDurationError: If the input is not a string, is empty or does
            not match ``<magnitude><unit>``.
        UnrecognizedUnitError: If the magnitude parses but the unit does not.
    """

    if not isinstance(duration, str):
        raise InvalidDurationError(
            code="invalid_duration",
            message=f"Duration must be a string, got {type(duration).__name__}",
        )
    if not duration.strip():
        raise InvalidDurationError(
            code="invalid_duration",
            message="Duration must be a non-empty string",
        )

    match = _DURATION_RE.match(duration)
    if match is None:
        raise InvalidDurationError(
            code="invalid_duration",
            message=f"Unable to parse duration: {duration!r}",
            details={"duration": duration, "hint": "expected e.g. '10s', '5 min', '1h'"},
        )

    magnitude_text, unit = match.groups()
    magnitude = Decimal(magnitude_text)

    factor = UNIT_FACTORS.get(unit.lower())
    if factor is None:
        raise UnrecognizedUnitError(
            code="unrecognized_unit",
            message=f"Unrecognized duration unit {unit!r} in {duration!r}",
            details={"duration": duration, "unit": unit},
        )

    return int(magnitude * factor)
