"""
Outbound reply pacing.

Every send waits a uniformly random delay inside the configured window before
reaching the transport. Sends to the same identifier go out one at a time in
the order they were requested.
"""
import asyncio
import logging
import random

from common.keyed_lock import KeyedLock
from .config import normalize_delay_range

log = logging.getLogger(__name__)


class ReplyDispatcher:
    def __init__(self, transport, min_delay: float = 0, max_delay: float = 60, rng: random.Random | None = None,
                 sleep=asyncio.sleep):
        self.transport = transport
        self.min_delay, self.max_delay = normalize_delay_range(min_delay, max_delay)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._order = KeyedLock()

    def next_delay(self) -> float:
        return self._rng.uniform(self.min_delay, self.max_delay)

    async def send(self, identifier: str, text: str) -> bool:
        """
        Deliver one message after the pacing delay.

        Returns:
            True when the transport accepted it; transport failures are logged
            and reported as False, never raised.
        """
        async with self._order(identifier):
            delay = self.next_delay()
            if delay > 0:
                log.info(f"[SEND] Delaying message to {identifier} by {delay:.1f}s")
                await self._sleep(delay)
            try:
                await self.transport.send(identifier, text)
            except Exception as e:
                log.error(f"[SEND] Failed to send to {identifier}: {e}")
                return False
            return True
