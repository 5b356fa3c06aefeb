"""
Fixed-capacity gate for bounding in-flight requests.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class ConcurrencyGate:
    """An async semaphore with precise in-flight and peak tracking.

    Acquired before issuing a request and released on completion or failure.
    The peak value is what the result record reports as the highest number of
    requests observed in flight at the same time.
    """

    def __init__(self, permits: int):
        """Initialize the gate with the given number of permits.

        Args:
            permits: Maximum number of concurrently held permits
        """
        if permits <= 0:
            raise ValueError(f"permits must be positive, got {permits}")
        self._max_permits = permits
        self._in_flight = 0
        self._peak_in_flight = 0
        self._condition = asyncio.Condition()

        logger.debug(f"Initialized ConcurrencyGate with {permits} permits")

    async def acquire(self) -> None:
        """Wait until a permit is available and take it."""
        async with self._condition:
            while self._in_flight >= self._max_permits:
                await self._condition.wait()
            self._in_flight += 1
            if self._in_flight > self._peak_in_flight:
                self._peak_in_flight = self._in_flight

    async def release(self) -> None:
        """Return a permit to the gate."""
        async with self._condition:
            if self._in_flight > 0:
                self._in_flight -= 1
                self._condition.notify()
            else:
                logger.warning("Attempted to release gate when in_flight is 0")

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()

    def in_flight(self) -> int:
        """Number of currently held permits."""
        return self._in_flight

    def peak_in_flight(self) -> int:
        """Highest number of permits ever held at once."""
        return self._peak_in_flight

    def available_permits(self) -> int:
        return self._max_permits - self._in_flight

    def max_permits(self) -> int:
        return self._max_permits

    def __repr__(self) -> str:
        return (
            f"ConcurrencyGate(in_flight={self._in_flight}/{self._max_permits}, "
            f"peak={self._peak_in_flight})"
        )
