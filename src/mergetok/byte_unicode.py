"""
Reversible mapping between raw bytes and printable unicode characters.

Byte-level BPE operates on strings, but merges must never see whitespace or
control characters (they would break line-oriented merge files). Every byte
is therefore replaced by a single printable character: bytes that already
render nicely keep their own code point, the rest are shifted to fresh code
points starting at 256.
"""

from typing import Final

# printable latin-1 ranges that map to themselves
_NICE_RANGES: Final[tuple[range, ...]] = (range(33, 127), range(161, 256))
_SHIFT_BASE: Final[int] = 256
_UNMAPPED: Final[int] = -1


class ByteUnicodeCodec:
    """Array-backed bijection between the 256 byte values and printable code points."""

    def __init__(self) -> None:
        nice = {b for rng in _NICE_RANGES for b in rng}
        byte_to_cp = [0] * 256
        for b in nice:
            byte_to_cp[b] = b
        n = 0
        for b in range(256):
            if b not in nice:
                byte_to_cp[b] = _SHIFT_BASE + n
                n += 1

        cp_to_byte = [_UNMAPPED] * (max(byte_to_cp) + 1)
        for b, cp in enumerate(byte_to_cp):
            cp_to_byte[cp] = b

        self._byte_to_char: tuple[str, ...] = tuple(chr(cp) for cp in byte_to_cp)
        self._cp_to_byte: tuple[int, ...] = tuple(cp_to_byte)

    def to_char(self, byte: int) -> str:
        """Return the printable character standing in for ``byte``."""
        return self._byte_to_char[byte]

    def to_byte(self, char: str) -> int:
        """
        Return the byte represented by ``char``.

        :raises ValueError: If ``char`` is not one of the 256 mapped characters.
        """
        cp = ord(char)
        if cp >= len(self._cp_to_byte) or self._cp_to_byte[cp] == _UNMAPPED:
            raise ValueError(f"character {char!r} (U+{cp:04X}) is not byte-mapped")
        return self._cp_to_byte[cp]

    def is_mapped(self, text: str) -> bool:
        """Return True if every character of ``text`` stands in for a byte."""
        table = self._cp_to_byte
        return all(ord(ch) < len(table) and table[ord(ch)] != _UNMAPPED for ch in text)

    def encode(self, data: bytes) -> str:
        """Map raw bytes into their printable string form."""
        table = self._byte_to_char
        return "".join(table[b] for b in data)

    def encode_text(self, text: str) -> str:
        """UTF-8 encode ``text`` and map the resulting bytes."""
        return self.encode(text.encode("utf-8"))

    def decode(self, mapped: str) -> bytes:
        """Invert :meth:`encode`, recovering the exact original bytes."""
        return bytes(self.to_byte(ch) for ch in mapped)

    def alphabet(self) -> list[str]:
        """Return the 256 mapped characters in byte order."""
        return list(self._byte_to_char)


# built once per process and never mutated
BYTE_UNICODE: Final[ByteUnicodeCodec] = ByteUnicodeCodec()
