"""Parsing of ``"<left><sep><right>"`` pairs from command-line text."""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def parse_pair(text: str, sep: str, kind: Callable[[str], T] = float) -> Optional[tuple[T, T]]:
    """Split ``text`` at the first ``sep`` and convert both halves with ``kind``.

    Returns ``None`` for empty text, a missing separator, an empty or padded half,
    digit-group underscores, or a half that ``kind`` rejects.
    """

    index = text.find(sep)
    if index < 0:
        return None
    left = text[:index]
    right = text[index + len(sep):]
    if not left or not right or left != left.strip() or right != right.strip():
        return None
    if "_" in left or "_" in right:
        return None
    try:
        return kind(left), kind(right)
    except ValueError:
        return None


def parse_complex(text: str) -> Optional[complex]:
    """Parse ``"re,im"`` into a complex number."""

    pair = parse_pair(text, ",")
    if pair is None:
        return None
    return complex(pair[0], pair[1])
