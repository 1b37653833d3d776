"""Ring buffer of recent pipeline events, mirrored to the logger."""
from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, List

from dashpipe.core import clock as clock_utils
from dashpipe.core.clock import Clock

logger = logging.getLogger(__name__)


class RequestLog:
    def __init__(self, capacity: int = 100, clock: Clock = clock_utils.now):
        self._entries: Deque[Dict] = deque(maxlen=capacity)
        self._clock = clock

    def record(self, kind: str, detail: str) -> None:
        self._entries.appendleft({"ts": int(self._clock() * 1000), "type": kind, "detail": detail})
        logger.info("[%s] %s", kind, detail)

    def entries(self) -> List[Dict]:
        """Newest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
