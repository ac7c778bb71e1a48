"""
Status de-duplication ledger

Remembers which status updates already have a reaction scheduled.
"""

import asyncio
from typing import Hashable, Optional, Set

from loguru import logger


class DeliveryLedger:
    """In-memory set of (author, event_id) keys with a periodic bulk purge"""

    def __init__(self, sweep_interval_hours: float = 6.0):
        self.sweep_interval_hours = sweep_interval_hours
        self._keys: Set[Hashable] = set()
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._keys

    def claim(self, key: Hashable) -> bool:
        """Insert key unless present

        Returns:
            True if the caller now owns the key
        """
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def release(self, key: Hashable):
        """Forget one key so a later duplicate can be scheduled again"""
        self._keys.discard(key)

    def clear(self) -> int:
        """Purge every key

        Returns:
            Number of keys removed
        """
        count = len(self._keys)
        self._keys.clear()
        return count

    def start(self):
        """Start the periodic sweep"""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Ledger sweeper started: every {self.sweep_interval_hours:g}h")

    def stop(self):
        """Stop the periodic sweep"""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
        logger.info("Ledger sweeper stopped")

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None

    async def _loop(self):
        while self._running:
            try:
                await asyncio.sleep(self.sweep_interval_hours * 3600)
                if not self._running:
                    break
                logger.info(f"🧹 Cleaning up reacted status cache ({len(self._keys)} entries)")
                self.clear()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Ledger sweep error: {e}")
