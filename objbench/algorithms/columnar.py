"""
A simulated columnar format read over a single object.

Each column is an independent access pattern over the same bytes: column ``i``
with page size ``p_i`` reads [0, p_i), [p_i, 2 * p_i), ... up to the end of
the object, the last page truncated to whatever remains. For example
``--page-sizes=4096,65536`` over a 10,000 byte object reads three pages
(4096, 4096, 1808) for column 0 and a single 10,000 byte page for column 1.

Pages are scheduled round-robin across columns so every column advances in
increasing offset order while the columns themselves proceed concurrently.
"""

import logging
import time
from itertools import zip_longest
from typing import List, NamedTuple, Optional, Sequence

from objbench.common.errors import InvalidScenario, SizeMismatch
from objbench.common.transfer import Transfer
from objbench.common.worker_pool import WorkerPool
from objbench.persistence.recorder import ResultRecord, ResultRecorder
from objbench.systems.base import ObjectInfo, StorageTarget

logger = logging.getLogger(__name__)


class Page(NamedTuple):
    column: int
    page_size: int
    offset: int
    length: int


def validate_page_sizes(page_sizes: Sequence[int]) -> None:
    if not page_sizes:
        raise InvalidScenario("At least one page size is required")
    for page_size in page_sizes:
        if page_size <= 0:
            raise InvalidScenario(f"Page sizes must be positive, got {page_size}")


def plan_column(column: int, page_size: int, object_size: int) -> List[Page]:
    """Pages of one column, in increasing offset order."""
    return [
        Page(column, page_size, offset, min(page_size, object_size - offset))
        for offset in range(0, object_size, page_size)
    ]


def plan_pages(object_size: int, page_sizes: Sequence[int]) -> List[List[Page]]:
    """Pages for every column; element ``i`` holds column ``i``'s pages."""
    validate_page_sizes(page_sizes)
    return [
        plan_column(column, page_size, object_size)
        for column, page_size in enumerate(page_sizes)
    ]


def interleave(columns: List[List[Page]]) -> List[Page]:
    """Round-robin merge: page 0 of every column, then page 1, and so on."""
    return [
        page
        for round_pages in zip_longest(*columns)
        for page in round_pages
        if page is not None
    ]


class ColumnarReadSimulator:
    """Reads every page of every column through the shared worker pool."""

    def __init__(
        self,
        storage_system: StorageTarget,
        recorder: ResultRecorder,
        page_sizes: Sequence[int],
        concurrency: int,
        max_retries: Optional[int] = None,
        request_timeout: Optional[float] = None,
        retry_delay: Optional[float] = None,
    ):
        validate_page_sizes(page_sizes)
        if concurrency <= 0:
            raise InvalidScenario(f"Concurrency must be positive, got {concurrency}")
        self.storage_system = storage_system
        self.recorder = recorder
        self.page_sizes = list(page_sizes)
        self.concurrency = concurrency
        self.pool = WorkerPool(
            storage_system,
            recorder,
            concurrency,
            max_retries=max_retries,
            request_timeout=request_timeout,
            retry_delay=retry_delay,
        )

    async def read(self, target: ObjectInfo) -> ResultRecord:
        """Read all columns of ``target`` and finalize the scenario's result.

        Raises:
            TransferExhausted: If a page failed on every attempt
            SizeMismatch: If any column did not read back the whole object
        """
        columns = plan_pages(target.size, self.page_sizes)
        pages = interleave(columns)
        transfers = [
            Transfer(target.key, page.offset, page.length, column=page.column)
            for page in pages
        ]
        expected = target.size * len(columns)

        logger.info(
            f"Columnar read of {target.key} ({target.size} bytes): "
            f"{len(columns)} columns, {len(pages)} pages, "
            f"{self.concurrency} parallel downloads"
        )

        start = time.perf_counter()
        received = await self.pool.run(transfers)
        elapsed = time.perf_counter() - start

        if received != expected:
            raise SizeMismatch(expected, received)

        return self.recorder.finalize(
            total_bytes=received,
            elapsed_seconds=elapsed,
            peak_in_flight=self.pool.peak_in_flight(),
            details={
                'object_size': target.size,
                'num_columns': len(columns),
                'num_pages': len(pages),
                'pages_per_column': [len(column) for column in columns],
                'parallel_downloads': self.concurrency,
            },
        )
