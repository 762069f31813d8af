"""
Utility functions for the social media API.

Lengths are counted in UTF-16 code units: a character outside the BMP,
such as most emoji, counts as two. Non-breaking spaces are not blank.
"""

import time
from typing import Optional

# Message text must be strictly shorter than this
MESSAGE_TEXT_LIMIT = 255

MIN_PASSWORD_LENGTH = 4

# Whitespace to str.isspace() but content for the blank check
_NON_BLANK_SPACES = frozenset("\u00a0\u2007\u202f\u0085")


def utf16_length(value: str) -> int:
    """Number of UTF-16 code units in value."""
    return len(value.encode("utf-16-le", errors="surrogatepass")) // 2


def is_blank(value: Optional[str]) -> bool:
    """Return True for None, empty or whitespace-only strings."""
    if value is None:
        return True
    return all(ch.isspace() and ch not in _NON_BLANK_SPACES for ch in value)


def is_valid_message_text(text: Optional[str]) -> bool:
    """
    Check the message text rule used on create and update.

    Args:
        text: Candidate message text

    Returns:
        True if the text is not blank and shorter than 255 UTF-16 units
    """
    return not is_blank(text) and utf16_length(text) < MESSAGE_TEXT_LIMIT


def is_valid_password(password: Optional[str]) -> bool:
    return password is not None and utf16_length(password) >= MIN_PASSWORD_LENGTH


def current_epoch() -> int:
    """Seconds since the Unix epoch, used when a message arrives without a timestamp."""
    return int(time.time())
