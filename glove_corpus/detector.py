from __future__ import annotations

import logging
import unicodedata
from typing import Union

LOGGER = logging.getLogger(__name__)

REPLACEMENT_CHAR = "\ufffd"
ALLOWED_CONTROLS = frozenset("\n\t\r")


def _decode(text: Union[str, bytes]) -> str | None:
    if isinstance(text, bytes):
        try:
            return text.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        # lone surrogates
        return None
    return text


def count_control_chars(text: str) -> int:
    return sum(
        1
        for char in text
        if char not in ALLOWED_CONTROLS and unicodedata.category(char) == "Cc"
    )


def count_replacement_chars(text: str) -> int:
    return text.count(REPLACEMENT_CHAR)


def is_corrupted(text: Union[str, bytes]) -> bool:
    """Return True when ``text`` looks like binary garbage rather than prose.

    A string is flagged when it is not valid UTF-8, holds a null byte, or when
    more than 10% of its characters are control characters (other than
    newline, tab and carriage return) or more than 5% are U+FFFD.
    """

    decoded = _decode(text)
    if decoded is None:
        LOGGER.debug("Invalid UTF-8 string: %r", text[:100])
        return True

    if "\x00" in decoded:
        LOGGER.debug("String contains null bytes: %r", decoded[:100])
        return True

    length = len(decoded)
    if length == 0:
        return False

    if count_control_chars(decoded) * 10 > length:
        LOGGER.debug("String contains too many control characters: %r", decoded[:100])
        return True

    if count_replacement_chars(decoded) * 20 > length:
        LOGGER.debug("String contains too many replacement characters: %r", decoded[:100])
        return True

    return False
