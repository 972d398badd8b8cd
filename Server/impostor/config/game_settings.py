"""
Game Configuration Constants Module

This module defines all game rule constants for the impostor party game.
All game parameters are centralized here to enable easy modification.
"""

import json
import os
from typing import List, Final

# Room codes
CODE_ALPHABET: Final[str] = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
"""
Room code alphabet. Excludes I, O, 0 and 1 which are easy to misread.
"""
CODE_LENGTH: Final[int] = 5

# Player limits
MIN_PLAYERS: Final[int] = 3
MAX_PLAYERS_LIMIT: Final[int] = 10
DEFAULT_MAX_PLAYERS: Final[int] = 10
MAX_NAME_LENGTH: Final[int] = 20

# Impostors
MIN_IMPOSTORS: Final[int] = 1
MAX_IMPOSTORS: Final[int] = MAX_PLAYERS_LIMIT // 3
DEFAULT_IMPOSTORS: Final[int] = 1

# Phase durations (seconds)
DEFAULT_HINT_SECONDS: Final[int] = 30
MIN_HINT_SECONDS: Final[int] = 5
MAX_HINT_SECONDS: Final[int] = 120
DEFAULT_VOTE_SECONDS: Final[int] = 60
MIN_VOTE_SECONDS: Final[int] = 10
MAX_VOTE_SECONDS: Final[int] = 300

# Start gate
READY_RATIO: Final[float] = 0.7

# Hints and chat
MAX_HINT_LENGTH: Final[int] = 120
PLACEHOLDER_HINT: Final[str] = "(no hint)"
MAX_CHAT_LENGTH: Final[int] = 200

# Voting
SKIP_VOTE: Final[str] = "__skip__"

# Directory
ANY_REGION: Final[str] = "any"
DEFAULT_REGION: Final[str] = "global"
MAX_REGION_LENGTH: Final[int] = 24
DIRECTORY_LIST_LIMIT: Final[int] = 50


def _load_secret_pool() -> List[str]:
    """
    Load the secret identity pool from secrets.json.

    Returns:
        List[str]: Distinct, trimmed identity names

    Raises:
        FileNotFoundError: If secrets.json file is not found
        ValueError: If the pool is empty or malformed
    """
    config_dir = os.path.dirname(os.path.abspath(__file__))
    json_file_path = os.path.join(config_dir, 'secrets.json')

    try:
        with open(json_file_path, 'r', encoding='utf-8') as f:
            pool = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Secret pool file not found: {json_file_path}")

    if not isinstance(pool, list):
        raise ValueError("JSON file must contain an array of names")

    names = [name.strip() for name in pool if isinstance(name, str) and name.strip()]
    if not names:
        raise ValueError("Secret pool cannot be empty")

    # Keep first occurrence order, drop duplicates
    return list(dict.fromkeys(names))


# Identity pool loaded from JSON file
SECRET_POOL: Final[List[str]] = _load_secret_pool()


def validate_secret_pool_integrity(pool: List[str] = None) -> bool:
    """
    Validates the secret identity pool.

    Returns:
        bool: True if the pool passes all validation checks

    Raises:
        ValueError: If any validation check fails
    """
    pool = SECRET_POOL if pool is None else pool
    if not pool:
        raise ValueError("Secret pool cannot be empty")

    for index, name in enumerate(pool):
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Entry at index {index} is not a non-empty string")
        if any(ch in name for ch in '<>"'):
            raise ValueError(f"Entry at index {index} '{name}' contains markup characters")

    if len(pool) != len(set(pool)):
        duplicates = sorted({name for name in pool if pool.count(name) > 1})
        raise ValueError(f"Duplicate names found in secret pool: {duplicates}")

    return True


if __name__ == "__main__":
    try:
        validate_secret_pool_integrity()
        print(f" Secret pool validation passed ({len(SECRET_POOL)} names)")
    except ValueError as config_error:
        print(f" Configuration validation failed: {config_error}")
        exit(1)
