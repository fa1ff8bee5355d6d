"""Input masks for text fields.

Mask characters:
    ``#``        any letter or digit
    ``0``, ``9`` a digit
    ``A``        a letter
    ``a``        a letter, stored lowercase
    anything else is a literal copied into the output

Example:
    >>> apply_mask("(000) 000-0000", "5551234567")
    '(555) 123-4567'
    >>> apply_mask("(000) 000-0000", "555")
    '(555'
"""

from __future__ import annotations

from typing import Callable, Dict

__all__ = ["MASK_TOKENS", "apply_mask", "matches_mask", "is_placeholder"]

MASK_TOKENS: Dict[str, Callable[[str], bool]] = {
    "#": str.isalnum,
    "0": str.isdigit,
    "9": str.isdigit,
    "A": str.isalpha,
    "a": str.isalpha,
}


def is_placeholder(token: str) -> bool:
    return token in MASK_TOKENS


def apply_mask(mask: str, raw: str) -> str:
    """Format ``raw`` through ``mask``.

    Raw characters that do not fit the next placeholder are skipped, and
    literals already present in the input are consumed rather than doubled,
    so applying a mask to its own output is a no-op. Output stops when the
    input runs out; trailing literals are not emitted for missing input.
    """
    out = []
    pos = 0
    for token in mask:
        if pos >= len(raw):
            break
        accepts = MASK_TOKENS.get(token)
        if accepts is None:
            out.append(token)
            if raw[pos] == token:
                pos += 1
            continue
        while pos < len(raw) and not accepts(raw[pos]):
            pos += 1
        if pos >= len(raw):
            break
        char = raw[pos]
        out.append(char.lower() if token == "a" else char)
        pos += 1
    return "".join(out)


def matches_mask(mask: str, value: str) -> bool:
    """True when ``value`` is a complete rendering of ``mask``."""
    if len(value) != len(mask):
        return False
    for token, char in zip(mask, value):
        accepts = MASK_TOKENS.get(token)
        if accepts is None:
            if char != token:
                return False
        elif not accepts(char) or (token == "a" and not char.islower()):
            return False
    return True
