"""Identifier validation."""

import re
from typing import Any

from .errors import InvalidInputError

# ASCII digits only; \d would also accept other Unicode digit characters
STEAM_ID64_PATTERN = re.compile(r"[0-9]{17}")


def is_valid_steam_id64(value: Any) -> bool:
    """Return True when value is a 17-digit SteamID64 string."""
    if not isinstance(value, str):
        return False
    return STEAM_ID64_PATTERN.fullmatch(value) is not None


def require_steam_id64(value: Any) -> str:
    """Return value unchanged, or raise InvalidInputError."""
    if not is_valid_steam_id64(value):
        raise InvalidInputError(
            "Invalid SteamID format. Please provide a 64-bit SteamID."
        )
    return value
