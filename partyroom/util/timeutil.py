from __future__ import annotations

import time


def now_ts() -> int:
    """Unix seconds."""
    return int(time.time())
