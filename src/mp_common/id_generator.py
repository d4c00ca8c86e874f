"""Business ID generator for promotions and listings.

IDs look like ``PRM-7049237411840000`` — an entity prefix plus a
snowflake-style integer, so they sort by creation time within a prefix.
Single-process only: the sequence lives in memory.
"""

import threading
import time

PROMOTION_PREFIX = "PRM"
LISTING_PREFIX = "LST"


class SnowflakeIdGenerator:
    """Layout (64 bits): 41 bits ms timestamp | 10 bits worker | 12 bits sequence."""

    _EPOCH_MS = 1_700_000_000_000
    _WORKER_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, worker_id: int = 0) -> None:
        if not (0 <= worker_id < (1 << self._WORKER_BITS)):
            raise ValueError(f"worker_id must be 0-{(1 << self._WORKER_BITS) - 1}")
        self._worker_id = worker_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_int(self) -> int:
        with self._lock:
            now_ms = int(time.time() * 1000)
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    # sequence exhausted for this millisecond
                    while now_ms <= self._last_ms:
                        now_ms = int(time.time() * 1000)
            else:
                self._sequence = 0
            self._last_ms = now_ms
            return (
                ((now_ms - self._EPOCH_MS) << (self._WORKER_BITS + self._SEQUENCE_BITS))
                | (self._worker_id << self._SEQUENCE_BITS)
                | self._sequence
            )

    def next_id(self, prefix: str) -> str:
        return f"{prefix}-{self.next_int()}"


_default_generator = SnowflakeIdGenerator()


def generate_id(prefix: str = PROMOTION_PREFIX) -> str:
    """Generate a prefixed business ID using the module-level generator."""
    return _default_generator.next_id(prefix)
