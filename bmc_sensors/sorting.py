"""Natural ordering of sensor paths.

Sensor names carry numeric indices (``temp1``, ``temp2``, ``temp10``) that
must sort by value rather than by digit characters.  The comparator splits
both strings into tokens on the fly and orders them as:

    end of string  <  digit run (by integer value)  <  any other character

Other characters compare by code point.  Because every position maps to a
token from one totally ordered set and strings compare token by token, the
result is a strict weak ordering suitable for ``sorted()``.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable

__all__ = ["compare_paths", "path_sort_key", "sort_paths"]


def _is_digit(ch: str) -> bool:
    # str.isdigit() also accepts superscripts and other scripts that int() rejects
    return "0" <= ch <= "9"


def _digit_run_end(text: str, start: int) -> int:
    end = start
    while end < len(text) and _is_digit(text[end]):
        end += 1
    return end


def _compare_numerals(a: str, b: str) -> int:
    """Compare two ASCII digit runs by value without converting to ``int``
    (no limit on run length)."""
    a = a.lstrip("0")
    b = b.lstrip("0")
    if len(a) != len(b):
        return -1 if len(a) < len(b) else 1
    if a != b:
        return -1 if a < b else 1
    return 0


def compare_paths(a: str, b: str) -> int:
    """Compare two sensor paths in natural order.

    Returns a negative number when *a* sorts first, positive when *b* sorts
    first and ``0`` when they are equivalent.  Digit runs of equal value but
    different width (``"007"`` / ``"7"``) are equivalent at that position and
    comparison continues after them.  Never raises.
    """
    i = j = 0
    len_a, len_b = len(a), len(b)

    while True:
        if i >= len_a or j >= len_b:
            return (i < len_a) - (j < len_b)

        ca, cb = a[i], b[j]
        digit_a, digit_b = _is_digit(ca), _is_digit(cb)

        if digit_a and digit_b:
            end_a = _digit_run_end(a, i)
            end_b = _digit_run_end(b, j)
            order = _compare_numerals(a[i:end_a], b[j:end_b])
            if order:
                return order
            i, j = end_a, end_b
        elif digit_a:
            return -1
        elif digit_b:
            return 1
        elif ca != cb:
            return -1 if ca < cb else 1
        else:
            i += 1
            j += 1


path_sort_key = functools.cmp_to_key(compare_paths)


def sort_paths(paths: Iterable[str]) -> list[str]:
    """Return *paths* as a new list in natural order (stable for ties)."""
    return sorted(paths, key=path_sort_key)
