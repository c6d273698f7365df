# rentlead/domain/parsing.py
from __future__ import annotations

import json
import math
from typing import Any


def round_half_up(x: float) -> int:
    """Round halves up (14.5 -> 15); the builtin round() would give 14."""
    return int(math.floor(x + 0.5))


def json_list(raw: str | None) -> list[Any]:
    """Decode a JSON array column; anything else reads as empty."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        return []
    return data if isinstance(data, list) else []
