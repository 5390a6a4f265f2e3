from __future__ import annotations

import math
import re

# Milliseconds per unit. Add new upstream units here; the patterns below are
# built from this table.
UNIT_FACTORS_MS: dict[str, float] = {
    "µs": 1 / 1000,  # U+00B5, what Go's time.Duration prints
    "μs": 1 / 1000,  # U+03BC
    "us": 1 / 1000,
    "ms": 1.0,
    "s": 1000.0,
    "m": 60 * 1000.0,
    "h": 60 * 60 * 1000.0,
}

# A whole run of digits and dots is one number, so "1.2.3ms" is never re-read
# from the middle of the run.
NUMBER_PATTERN = r"([\d.]+)"
# Leading float of such a run: "1.2.3" reads as 1.2, "." has no value.
FLOAT_PREFIX_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
# Longer units first so "ms" is never read as "m" followed by "s".
UNIT_PATTERN = "|".join(
    re.escape(unit) for unit in sorted(UNIT_FACTORS_MS, key=len, reverse=True)
)
SEGMENT_RE = re.compile(NUMBER_PATTERN + "(" + UNIT_PATTERN + ")")
# Used with fullmatch; "$" would also accept a trailing newline.
SINGLE_SEGMENT_RE = re.compile(NUMBER_PATTERN + "(" + UNIT_PATTERN + ")")
COOLDOWN_RE = re.compile(NUMBER_PATTERN + "s")


def _leading_float(digits: str) -> float:
    match = FLOAT_PREFIX_RE.match(digits)
    if match is None:
        return 0.0
    return float(match.group())


def _finite_or_zero(value: float) -> float:
    # Digit runs long enough to overflow a float count as malformed.
    return value if math.isfinite(value) else 0.0


def parse_duration(text: str) -> float:
    """Sum every ``<number><unit>`` segment in ``text`` as milliseconds.

    ``"1h30m"`` is 5,400,000 and ``"45.5µs"`` is 0.0455. Content that does not
    form a segment is skipped, so unparseable input yields ``0.0``.
    """
    if not isinstance(text, str):
        return 0.0
    total_ms = 0.0
    for match in SEGMENT_RE.finditer(text):
        segment_ms = _leading_float(match.group(1)) * UNIT_FACTORS_MS[match.group(2)]
        total_ms += _finite_or_zero(segment_ms)
    return _finite_or_zero(total_ms)


def parse_single_duration(text: str) -> float:
    """Parse a string holding exactly one segment, e.g. ``"1.2ms"``; else ``0.0``."""
    if not isinstance(text, str):
        return 0.0
    match = SINGLE_SEGMENT_RE.fullmatch(text.strip())
    if match is None:
        return 0.0
    return _finite_or_zero(_leading_float(match.group(1)) * UNIT_FACTORS_MS[match.group(2)])


def parse_cooldown(text: str) -> float:
    """Seconds from a ``"<number>s"`` cooldown string; anything else is ``0.0``."""
    if not isinstance(text, str):
        return 0.0
    match = COOLDOWN_RE.fullmatch(text)
    return _finite_or_zero(_leading_float(match.group(1))) if match else 0.0
