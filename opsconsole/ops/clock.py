# -*- coding: utf-8 -*-
import time
from datetime import datetime, timezone


class SystemClock:
    """Wall clock for timestamps, monotonic clock for cache ages."""

    def now(self) -> datetime:
        # Naive UTC, matching the DateTime columns
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def monotonic(self) -> float:
        return time.monotonic()
