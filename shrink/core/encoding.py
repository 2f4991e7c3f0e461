"""
Base62 Encoding

Converts between non-negative integers and short base62 strings.
Used for short codes (derived from the database row id) and for
server-generated request ids (derived from an in-process counter).

Design Decisions:
- Alphabet starts with lowercase letters, so 0 -> "a", 1 -> "b"
- No padding: codes grow with the id (a, b, ..., 9, ba, bb, ...)
- Counter-based: uniqueness comes from the integer, not from randomness
"""

from shrink.core.exceptions import InvalidCodeError

BASE62_CHARS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
BASE62_LENGTH = len(BASE62_CHARS)


def encode_base62(number: int) -> str:
    """
    Encode a non-negative integer as a base62 string.

    Args:
        number: The number to convert

    Returns:
        Base62 encoded string, or an empty string for negative input

    Example:
        encode_base62(0) -> "a"
        encode_base62(1) -> "b"
        encode_base62(62) -> "ba"
    """
    if number < 0:
        return ""
    if number == 0:
        return BASE62_CHARS[0]

    digits = []
    while number > 0:
        number, remainder = divmod(number, BASE62_LENGTH)
        digits.append(BASE62_CHARS[remainder])

    return "".join(reversed(digits))


def decode_base62(encoded: str) -> int:
    """
    Decode a base62 string back to a number.

    Args:
        encoded: The base62 encoded string

    Returns:
        The decoded number

    Raises:
        InvalidCodeError: If the string is empty or has characters outside the alphabet
    """
    if not encoded:
        raise InvalidCodeError(encoded)

    number = 0
    for char in encoded:
        index = BASE62_CHARS.find(char)
        if index == -1:
            raise InvalidCodeError(encoded)
        number = number * BASE62_LENGTH + index
    return number
