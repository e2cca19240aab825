# models/timestamps.py
import time


def now_ms() -> int:
    """Current wall‑clock time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)
