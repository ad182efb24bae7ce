"""Shutter speed parsing.

Cameras report shutter speed as a radio choice string: either a plain
number of seconds ("2.5", "30") or a fraction ("1/200"). This module turns
that string into seconds.

Example:
    >>> from astrophi.utils.shutter import parse_shutter
    >>> parse_shutter("1/200")
    0.005
"""

from __future__ import annotations

from functools import reduce

from astrophi.errors import InternalFault, ParseFault

__all__ = ["parse_shutter"]


def _parse_float(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError as e:
        raise ParseFault(f"invalid float literal: {text.strip()!r}") from e


def parse_shutter(text: str) -> float:
    """Convert a camera shutter speed string to seconds.

    Fractions are split on ``/`` and folded left to right with division,
    so "1/4/2" is (1 / 4) / 2. Whitespace around each component is
    ignored.

    Args:
        text: Raw shutter speed choice from the camera.

    Returns:
        Exposure time in seconds.

    Raises:
        ParseFault: If any component is not a number, or a denominator
            is zero.
        InternalFault: If splitting produced no components.

    Example:
        >>> parse_shutter("2.5")
        2.5
        >>> parse_shutter(" 1 / 4 / 2 ")
        0.125
    """
    if "/" not in text:
        return _parse_float(text)

    parts = [_parse_float(part) for part in text.split("/")]
    if not parts:
        raise InternalFault()

    try:
        return reduce(lambda a, b: a / b, parts)
    except ZeroDivisionError as e:
        raise ParseFault(f"zero denominator in shutter speed: {text.strip()!r}") from e
