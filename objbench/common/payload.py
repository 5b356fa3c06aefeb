"""
Synthetic payload generation for uploads.
"""

import logging
from typing import Iterator, Optional

import numpy as np

from objbench.configuration import UPLOAD_CHUNK_BYTES

logger = logging.getLogger(__name__)


class PayloadGenerator:
    """Produces pseudorandom bytes of an exact size, in bounded batches.

    Every call to ``chunks`` starts from a fresh random generator so no state
    carries over from one object to the next. Passing ``seed`` makes the bytes
    reproducible, which is only useful in tests.
    """

    def __init__(self, chunk_size: int = UPLOAD_CHUNK_BYTES, seed: Optional[int] = None):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.seed = seed

    def chunks(self, size: int) -> Iterator[bytes]:
        """Yield batches whose lengths sum to exactly ``size`` bytes."""
        rng = np.random.default_rng(self.seed)
        remaining = size
        while remaining > 0:
            to_write = min(remaining, self.chunk_size)
            yield rng.bytes(to_write)
            remaining -= to_write

    def generate(self, size: int) -> bytes:
        """Return a whole payload in memory."""
        return b"".join(self.chunks(size))
