"""
Parallel whole-object download benchmark.
"""

import logging
import time
from typing import List, Optional, Tuple

from objbench.common.errors import InvalidScenario, SizeMismatch
from objbench.common.transfer import Transfer
from objbench.common.worker_pool import WorkerPool
from objbench.persistence.recorder import ResultRecord, ResultRecorder
from objbench.systems.base import ObjectInfo, StorageTarget

logger = logging.getLogger(__name__)


def plan_chunks(object_size: int, concurrency: int,
                block_size: Optional[int] = None) -> List[Tuple[int, int]]:
    """Split [0, object_size) into contiguous (offset, length) chunks.

    Without ``block_size`` the object is divided into ``concurrency`` nearly
    equal chunks; the first ``object_size % concurrency`` chunks are one byte
    longer. Objects smaller than ``concurrency`` bytes get one-byte chunks.
    With ``block_size`` every chunk has that length except a shorter last one.
    """
    if object_size < 0:
        raise InvalidScenario(f"Object size must not be negative, got {object_size}")
    if concurrency <= 0:
        raise InvalidScenario(f"Concurrency must be positive, got {concurrency}")
    if block_size is not None and block_size <= 0:
        raise InvalidScenario(f"Block size must be positive, got {block_size}")

    chunks = []
    if block_size is not None:
        for offset in range(0, object_size, block_size):
            chunks.append((offset, min(block_size, object_size - offset)))
        return chunks

    base, remainder = divmod(object_size, concurrency)
    offset = 0
    for index in range(concurrency):
        length = base + (1 if index < remainder else 0)
        if length == 0:
            break
        chunks.append((offset, length))
        offset += length
    return chunks


class ParallelDownloader:
    """Downloads whole objects as concurrent, non-overlapping range reads."""

    def __init__(
        self,
        storage_system: StorageTarget,
        recorder: ResultRecorder,
        concurrency: int,
        block_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        request_timeout: Optional[float] = None,
        retry_delay: Optional[float] = None,
    ):
        if concurrency <= 0:
            raise InvalidScenario(f"Concurrency must be positive, got {concurrency}")
        self.storage_system = storage_system
        self.recorder = recorder
        self.concurrency = concurrency
        self.block_size = block_size
        self.pool = WorkerPool(
            storage_system,
            recorder,
            concurrency,
            max_retries=max_retries,
            request_timeout=request_timeout,
            retry_delay=retry_delay,
        )

        logger.info(
            f"Initialized downloader with {concurrency} parallel downloads"
            + (f" and {block_size} byte blocks" if block_size else "")
        )

    def plan(self, objects: List[ObjectInfo]) -> List[Transfer]:
        transfers = []
        for info in objects:
            for offset, length in plan_chunks(info.size, self.concurrency, self.block_size):
                transfers.append(Transfer(info.key, offset, length))
        return transfers

    async def download(self, objects: List[ObjectInfo]) -> ResultRecord:
        """Download every object and finalize the scenario's result.

        Raises:
            TransferExhausted: If a chunk failed on every attempt
            SizeMismatch: If the bytes received differ from the listed sizes
        """
        expected = sum(info.size for info in objects)
        transfers = self.plan(objects)

        logger.info(
            f"Downloading {len(objects)} object(s), {expected} bytes "
            f"in {len(transfers)} chunks"
        )

        start = time.perf_counter()
        received = await self.pool.run(transfers)
        elapsed = time.perf_counter() - start

        if received != expected:
            raise SizeMismatch(expected, received)

        chunk_sizes = [transfer.length for transfer in transfers]
        return self.recorder.finalize(
            total_bytes=received,
            elapsed_seconds=elapsed,
            peak_in_flight=self.pool.peak_in_flight(),
            details={
                'num_objects': len(objects),
                'num_blocks': len(transfers),
                'block_size': max(chunk_sizes) if chunk_sizes else 0,
                'parallel_downloads': self.concurrency,
            },
        )
