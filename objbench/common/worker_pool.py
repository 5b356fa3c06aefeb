"""
Async worker pool issuing bounded-concurrency range reads with retries.
"""

import asyncio
import logging
import time
from typing import List, Optional

from objbench.common.concurrency_gate import ConcurrencyGate
from objbench.common.errors import ShortRead, TransferExhausted, TransientTransferError
from objbench.common.transfer import Transfer
from objbench.configuration import (
    MAX_RETRIES,
    PROGRESS_INTERVAL,
    REQUEST_TIMEOUT_SECONDS,
    RETRY_DELAY_SECONDS,
)
from objbench.persistence.record import (
    OUTCOME_ERROR,
    OUTCOME_SUCCESS,
    OUTCOME_TIMEOUT,
    TransferRecord,
)
from objbench.persistence.recorder import ResultRecorder
from objbench.systems.base import StorageTarget

logger = logging.getLogger(__name__)


class WorkerPool:
    """Runs a backlog of range transfers with at most ``concurrency`` in flight.

    Workers pull transfers from a shared queue in the order they were given
    and hold a gate permit for the duration of every request. A failed attempt
    (backend error, short read or timeout) is retried up to ``max_retries``
    times. When a transfer exhausts its retries the run is cancelled: no more
    transfers are scheduled, requests already in flight drain, and ``run``
    raises TransferExhausted without crediting any bytes.
    """

    def __init__(
        self,
        storage_system: StorageTarget,
        recorder: ResultRecorder,
        concurrency: int,
        max_retries: Optional[int] = None,
        request_timeout: Optional[float] = None,
        retry_delay: Optional[float] = None,
    ):
        """Initialize the worker pool.

        Args:
            storage_system: Storage target to read from
            recorder: Recorder receiving one TransferRecord per attempt
            concurrency: Maximum number of requests in flight
            max_retries: Retries allowed after the first attempt (default: from configuration)
            request_timeout: Per-request timeout in seconds (default: from configuration)
            retry_delay: Seconds to wait before a retry (default: from configuration)
        """
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")

        self.storage_system = storage_system
        self.recorder = recorder
        self.concurrency = concurrency
        self.max_retries = MAX_RETRIES if max_retries is None else max_retries
        self.request_timeout = REQUEST_TIMEOUT_SECONDS if request_timeout is None else request_timeout
        self.retry_delay = RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        if self.max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {self.max_retries}")

        self.gate = ConcurrencyGate(concurrency)
        self.cancel_event = asyncio.Event()
        self._failure: Optional[TransferExhausted] = None
        self._bytes_received = 0
        self._completed = 0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def peak_in_flight(self) -> int:
        return self.gate.peak_in_flight()

    async def run(self, transfers: List[Transfer]) -> int:
        """Execute every transfer and return the total number of bytes received.

        Raises:
            TransferExhausted: If any transfer failed on every allowed attempt
        """
        backlog: asyncio.Queue = asyncio.Queue()
        for transfer in transfers:
            backlog.put_nowait(transfer)

        self.cancel_event.clear()
        self._failure = None
        self._bytes_received = 0
        self._completed = 0

        num_workers = min(self.concurrency, len(transfers))
        logger.info(
            f"Starting {num_workers} workers for {len(transfers)} transfers "
            f"(max_attempts={self.max_attempts}, timeout={self.request_timeout}s)"
        )

        workers = [
            asyncio.create_task(self._worker_task(worker_id, backlog))
            for worker_id in range(num_workers)
        ]
        results = await asyncio.gather(*workers, return_exceptions=True)

        if self._failure is not None:
            raise self._failure
        for result in results:
            if isinstance(result, BaseException):
                raise result

        return self._bytes_received

    async def _worker_task(self, worker_id: int, backlog: asyncio.Queue):
        """Pull transfers until the backlog is empty or the run is cancelled."""
        while not self.cancel_event.is_set():
            try:
                transfer = backlog.get_nowait()
            except asyncio.QueueEmpty:
                return

            try:
                received = await self._execute(worker_id, transfer)
            except TransferExhausted as e:
                if self._failure is None:
                    self._failure = e
                    logger.error(f"Worker {worker_id} aborting scenario: {e}")
                self.cancel_event.set()
                return
            except BaseException:
                self.cancel_event.set()
                raise

            self._bytes_received += received
            self._completed += 1
            if self._completed % PROGRESS_INTERVAL == 0:
                logger.debug(f"{self._completed} transfers completed")

    async def _execute(self, worker_id: int, transfer: Transfer) -> int:
        """Run one transfer through its retry state machine."""
        while True:
            attempt = transfer.begin_attempt()
            error: Optional[BaseException] = None
            outcome = OUTCOME_SUCCESS
            data = b""

            start_ts = time.time()
            start = time.perf_counter()
            async with self.gate:
                try:
                    data = await asyncio.wait_for(
                        self.storage_system.read_range(transfer.key, transfer.offset, transfer.length),
                        timeout=self.request_timeout,
                    )
                    if len(data) != transfer.length:
                        raise ShortRead(transfer.key, transfer.offset, transfer.length, len(data))
                except asyncio.TimeoutError:
                    outcome = OUTCOME_TIMEOUT
                    error = TransientTransferError(
                        f"Timed out after {self.request_timeout}s reading "
                        f"{transfer.key}[{transfer.offset}:{transfer.end}]"
                    )
                except Exception as e:
                    outcome = OUTCOME_ERROR
                    error = e
            latency_ms = (time.perf_counter() - start) * 1000

            self.recorder.record(TransferRecord(
                worker_id=worker_id,
                object_key=transfer.key,
                range_start=transfer.offset,
                range_len=transfer.length,
                bytes_transferred=len(data) if error is None else 0,
                latency_ms=latency_ms,
                outcome=outcome,
                concurrency=self.concurrency,
                attempt=attempt,
                column=transfer.column,
                error=str(error) if error is not None else "",
                start_ts=start_ts,
                end_ts=time.time(),
            ))

            if error is None:
                transfer.succeed(len(data))
                return len(data)

            if not transfer.fail_attempt(error, self.max_attempts):
                raise TransferExhausted(
                    f"{transfer!r} failed after {transfer.attempts} attempts: {error}",
                    last_error=error,
                )

            logger.warning(
                f"Worker {worker_id} retry {attempt}/{self.max_retries} for "
                f"{transfer.key}[{transfer.offset}:{transfer.end}]: {error}"
            )
            if self.retry_delay > 0:
                await asyncio.sleep(self.retry_delay)
            if self.cancel_event.is_set():
                # Another transfer already failed the scenario; stop retrying
                return 0
