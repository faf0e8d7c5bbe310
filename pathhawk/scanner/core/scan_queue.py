"""
Scan queue with at-most-once dispatch.

The pending FIFO and the visited set live behind one asyncio lock so that a
check-and-insert from any producer is indivisible.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Dict, Iterable, Optional, Set, Tuple

from pathhawk.scanner.core.models import WorkItem

logger = logging.getLogger(__name__)


class ScanQueue:
    """FIFO of pending work items plus the set of keys already accepted."""

    def __init__(self):
        self._pending: Deque[WorkItem] = deque()
        self._visited: Set[Tuple] = set()
        self._lock = asyncio.Lock()
        self.duplicates = 0

    async def enqueue(self, item: WorkItem) -> bool:
        """Queue ``item`` unless its key was seen before. Returns True if queued."""
        async with self._lock:
            return self._push(item)

    async def enqueue_many(self, items: Iterable[WorkItem]) -> int:
        """Queue a batch under a single lock acquisition."""
        async with self._lock:
            return sum(1 for item in items if self._push(item))

    def _push(self, item: WorkItem) -> bool:
        key = item.dedup_key
        if key in self._visited:
            self.duplicates += 1
            logger.debug(f"Skipping duplicate {item.target.method} {item.target.url}")
            return False
        self._visited.add(key)
        self._pending.append(item)
        return True

    async def dequeue(self) -> Optional[WorkItem]:
        async with self._lock:
            if self._pending:
                return self._pending.popleft()
            return None

    def snapshot(self) -> Dict[str, int]:
        """Unlocked view of the queue sizes."""
        return {
            'pending': len(self._pending),
            'visited': len(self._visited),
            'duplicates': self.duplicates,
        }

    def empty(self) -> bool:
        return not self._pending

    def __len__(self) -> int:
        return len(self._pending)
