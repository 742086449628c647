"""
Utilities for turning byte-mapped pieces into displayable strings.
"""

import unicodedata

from .byte_unicode import BYTE_UNICODE


def _escape_ctrl_chars(s: str) -> str:
    """Replace all Unicode control characters with their escape sequences."""
    cleaned = []
    for c in s:
        # control category codes vary: Cc, Cf, Cn etc.
        # so check via first character
        if unicodedata.category(c)[0] != "C":
            cleaned.append(c)
        else:
            cleaned.append(f"\\u{ord(c):04x}")
    return "".join(cleaned)


def render_bytes(b: bytes) -> str:
    """
    Decode bytes as UTF-8 and escape control characters.

    Invalid UTF-8 sequences (pieces often hold partial code points) are
    replaced with the Unicode replacement character.
    """
    return _escape_ctrl_chars(b.decode("utf-8", errors="replace"))


def render_piece(piece: str) -> str:
    """Render a byte-mapped BPE piece as readable text."""
    return render_bytes(BYTE_UNICODE.decode(piece))
