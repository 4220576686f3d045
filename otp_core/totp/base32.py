"""
Base32 Codec
============
RFC 4648 base32 without padding, used for human-typable TOTP secrets.
"""

from ..exceptions import InvalidCharacter

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_DECODE_MAP = {char: index for index, char in enumerate(BASE32_ALPHABET)}


def base32_encode(data: bytes) -> str:
    """
    Encode bytes as unpadded base32.

    Bits are consumed five at a time; a trailing partial group is
    left-shifted and zero-filled.
    """
    bits = 0
    value = 0
    output = []

    for byte in data:
        value = ((value << 8) | byte) & 0xFFFF
        bits += 8
        while bits >= 5:
            output.append(BASE32_ALPHABET[(value >> (bits - 5)) & 31])
            bits -= 5

    if bits > 0:
        output.append(BASE32_ALPHABET[(value << (5 - bits)) & 31])

    return "".join(output)


def base32_decode(encoded: str) -> bytes:
    """
    Decode base32 text (case-insensitive, trailing '=' ignored).

    Raises:
        InvalidCharacter: If a character is outside the alphabet
    """
    cleaned = encoded.upper().rstrip("=")
    bits = 0
    value = 0
    output = bytearray()

    for position, char in enumerate(cleaned):
        index = _DECODE_MAP.get(char)
        if index is None:
            raise InvalidCharacter(char, position)

        value = ((value << 5) | index) & 0xFFFF
        bits += 5
        if bits >= 8:
            output.append((value >> (bits - 8)) & 0xFF)
            bits -= 8

    return bytes(output)
