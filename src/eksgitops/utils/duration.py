# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import re
from datetime import timedelta

_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}

_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")


def parse_duration(value: str) -> timedelta:
    """
    Parse a Go-style duration string ("25m", "1h30m", "90s", "1.5h").

    Raises ValueError on anything else, including a bare number.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty duration")
    if text == "0":
        return timedelta(0)

    total = timedelta(0)
    pos = 0
    for match in _PART.finditer(text):
        if match.start() != pos:
            break
        amount, unit = match.groups()
        total += _UNITS[unit] * float(amount)
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def format_duration(value: timedelta) -> str:
    """Render a timedelta the way eksctl expects its --timeout flag."""
    seconds = int(value.total_seconds())
    if seconds <= 0:
        return "0s"

    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)

    out = ""
    if hours:
        out += f"{hours}h"
    if minutes:
        out += f"{minutes}m"
    if seconds:
        out += f"{seconds}s"
    return out
