from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable

_DIGITS = "0123456789"


def _is_digit(ch: str) -> bool:
    return ch != "" and ch in _DIGITS


def _order(ch: str) -> int:
    # end of string and digits rank 0, letters by code point, '~' before
    # everything, other punctuation after all letters
    if ch == "" or _is_digit(ch):
        return 0
    if ch.isascii() and ch.isalpha():
        return ord(ch)
    if ch == "~":
        return -1
    return ord(ch) + 256


def compare_versions(a: str, b: str) -> int:
    """
    Compare two tags the way ``sort --version-sort`` does: alternating
    non-digit and digit runs, digit runs compared numerically.
    """
    i = j = 0
    while i < len(a) or j < len(b):
        while (i < len(a) and not _is_digit(a[i])) or (
            j < len(b) and not _is_digit(b[j])
        ):
            ac = _order(a[i] if i < len(a) else "")
            bc = _order(b[j] if j < len(b) else "")
            if ac != bc:
                return ac - bc
            i += 1
            j += 1

        while i < len(a) and a[i] == "0":
            i += 1
        while j < len(b) and b[j] == "0":
            j += 1

        first_diff = 0
        while i < len(a) and _is_digit(a[i]) and j < len(b) and _is_digit(b[j]):
            if not first_diff:
                first_diff = ord(a[i]) - ord(b[j])
            i += 1
            j += 1
        if i < len(a) and _is_digit(a[i]):
            return 1
        if j < len(b) and _is_digit(b[j]):
            return -1
        if first_diff:
            return first_diff
    return 0


def _compare_tags(a: str, b: str) -> int:
    # identical versions fall back to byte order, as sort does
    return compare_versions(a, b) or (a > b) - (a < b)


version_key = cmp_to_key(_compare_tags)


def max_version(tags: Iterable[str]) -> str | None:
    ordered = sorted(tags, key=version_key)
    return ordered[-1] if ordered else None
