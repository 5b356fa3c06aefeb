"""
Upload planning: key naming and streaming synthetic objects to a target.
"""

import logging
import random
import string
import time
from typing import Callable, List, Optional

from objbench.common.errors import InvalidScenario
from objbench.common.payload import PayloadGenerator
from objbench.common.scenario import PrefixMode
from objbench.configuration import OBJECT_NAME_TEMPLATE, RANDOM_PREFIX_LENGTH
from objbench.persistence.record import OUTCOME_ERROR, OUTCOME_SUCCESS, TransferRecord
from objbench.persistence.recorder import ResultRecord, ResultRecorder
from objbench.systems.base import StorageTarget

logger = logging.getLogger(__name__)

PREFIX_ALPHABET = string.ascii_letters + string.digits


def random_prefix(rng: random.Random = None, length: int = RANDOM_PREFIX_LENGTH) -> str:
    rng = rng or random
    return "".join(rng.choices(PREFIX_ALPHABET, k=length))


def object_name(index: int, num_objects: int) -> str:
    """Zero-padded so that names sort in index order."""
    width = len(str(max(num_objects - 1, 0)))
    return OBJECT_NAME_TEMPLATE.format(index=str(index).zfill(width))


def object_keys(
    base_key: str,
    num_objects: int,
    prefix_mode: PrefixMode,
    join: Callable[..., str],
    rng: random.Random = None,
) -> List[str]:
    """Keys for a multi-object upload.

    Sequential mode yields ``<base>/object_<i>.bin``. Random mode inserts a
    random alphanumeric path segment, ``<base>/<prefix>/object_<i>.bin``,
    which spreads the keys across the store's key space.
    """
    if num_objects <= 0:
        raise InvalidScenario(f"Object count must be positive, got {num_objects}")

    keys = []
    for index in range(num_objects):
        name = object_name(index, num_objects)
        if prefix_mode == PrefixMode.RANDOM:
            keys.append(join(base_key, random_prefix(rng), name))
        else:
            keys.append(join(base_key, name))
    return keys


class UploadPlanner:
    """Writes synthetic objects to a storage target.

    Write failures are not retried: they are recorded and re-raised so the
    run aborts.
    """

    def __init__(
        self,
        storage_system: StorageTarget,
        recorder: ResultRecorder,
        payload: Optional[PayloadGenerator] = None,
        rng: random.Random = None,
    ):
        self.storage_system = storage_system
        self.recorder = recorder
        self.payload = payload or PayloadGenerator()
        self.rng = rng

    async def upload_object(self, key: str, size: int) -> int:
        """Stream one object of ``size`` bytes to ``key``."""
        if size <= 0:
            raise InvalidScenario(f"Object size must be positive, got {size}")

        start_ts = time.time()
        start = time.perf_counter()
        try:
            await self.storage_system.write_stream(key, self.payload.chunks(size), size)
        except Exception as e:
            self._record(key, size, 0, start, start_ts, OUTCOME_ERROR, str(e))
            logger.error(f"Failed to upload {key}: {e}")
            raise
        latency_ms = self._record(key, size, size, start, start_ts, OUTCOME_SUCCESS)
        logger.info(f"Uploaded {key} ({size} bytes) in {latency_ms / 1000:.2f} seconds")
        return size

    def _record(self, key, size, written, start, start_ts, outcome, error=""):
        latency_ms = (time.perf_counter() - start) * 1000
        self.recorder.record(TransferRecord(
            worker_id=0,
            object_key=key,
            range_start=0,
            range_len=size,
            bytes_transferred=written,
            latency_ms=latency_ms,
            outcome=outcome,
            concurrency=1,
            operation="write",
            error=error,
            start_ts=start_ts,
            end_ts=time.time(),
        ))
        return latency_ms

    async def upload_data(self, key: str, size: int) -> ResultRecord:
        """Upload a single object and finalize the scenario's result."""
        start = time.perf_counter()
        written = await self.upload_object(key, size)
        elapsed = time.perf_counter() - start
        return self.recorder.finalize(
            total_bytes=written,
            elapsed_seconds=elapsed,
            peak_in_flight=1,
            details={'object_key': key},
        )

    async def upload_multiple(
        self,
        base_key: str,
        num_objects: int,
        total_size: int,
        prefix_mode: PrefixMode = PrefixMode.SEQUENTIAL,
    ) -> ResultRecord:
        """Upload ``num_objects`` objects sharing ``total_size`` bytes evenly."""
        if num_objects <= 0:
            raise InvalidScenario(f"Object count must be positive, got {num_objects}")
        if total_size <= 0:
            raise InvalidScenario(f"Size must be positive, got {total_size}")
        if total_size % num_objects != 0:
            raise InvalidScenario(
                f"Size {total_size} must be divisible by the number of objects ({num_objects})"
            )
        size_per_object = total_size // num_objects

        keys = object_keys(
            base_key, num_objects, prefix_mode, self.storage_system.join_key, self.rng
        )
        logger.info(
            f"Uploading {num_objects} objects of {size_per_object} bytes "
            f"({prefix_mode.value} keys)"
        )

        start = time.perf_counter()
        written = 0
        for key in keys:
            written += await self.upload_object(key, size_per_object)
        elapsed = time.perf_counter() - start

        return self.recorder.finalize(
            total_bytes=written,
            elapsed_seconds=elapsed,
            peak_in_flight=1,
            details={
                'size_per_object': size_per_object,
                'first_key': keys[0],
                'last_key': keys[-1],
            },
        )
