"""Command argument parsing."""

from __future__ import annotations

import re

from .errors import InvalidParameter, MissingParameter

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def validate_id(raw: str | None) -> int:
    """Parse the ``<id>`` argument of a command.

    Only the leading integer counts: ``"12abc"`` is 12 and ``"3.9"`` is 3,
    while ``"abc"`` has none and is rejected. Only ASCII digits count. Sign and
    magnitude are kept as typed.
    """

    if raw is None:
        raise MissingParameter("id")
    match = _LEADING_INT.match(raw)
    if match is None:
        raise InvalidParameter("id", raw)
    return int(match.group(1))
