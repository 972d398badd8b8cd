"""
Helper Functions

Contains utility functions used throughout the application.
"""

import html
import random
import re
from typing import Container, Optional

from ..config import game_settings as rules

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_text(raw: Optional[str], max_length: int) -> str:
    """
    Strip markup and control characters, collapse whitespace and truncate.

    The result is plain text; clients still escape it when rendering.
    """
    if not raw:
        return ""
    text = html.unescape(_TAG_RE.sub("", raw))
    text = _CONTROL_RE.sub(" ", text).replace("<", "").replace(">", "")
    text = " ".join(text.split())
    return text[:max_length].strip()


def make_room_code(rng: random.Random, taken: Container[str]) -> str:
    """Generate a room code that is not currently in use."""
    while True:
        code = "".join(rng.choice(rules.CODE_ALPHABET) for _ in range(rules.CODE_LENGTH))
        if code not in taken:
            return code
