"""
In-process storage target for tests and dry runs.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from objbench.common.errors import ObjectNotFound, ShortRead
from objbench.systems.base import ObjectInfo, StorageTarget

logger = logging.getLogger(__name__)


class MemoryTarget(StorageTarget):
    """Keeps objects in a dict owned by the instance.

    ``read_delay`` suspends every range read for the given number of seconds
    so that concurrent readers overlap the way they would against a remote
    backend.
    """

    scheme = "memory"

    def __init__(self, uri: str = "memory://", objects: Optional[Dict[str, bytes]] = None,
                 read_delay: float = 0.0):
        super().__init__(uri)
        self.objects: Dict[str, bytes] = objects if objects is not None else {}
        self.read_delay = read_delay

    async def write(self, key: str, data: bytes) -> None:
        self.objects[key] = bytes(data)

    async def read_range(self, key: str, offset: int, length: int) -> bytes:
        if key not in self.objects:
            raise ObjectNotFound(key)
        await asyncio.sleep(self.read_delay)
        data = self.objects[key][offset:offset + length]
        if len(data) != length:
            raise ShortRead(key, offset, length, len(data))
        return data

    async def head(self, key: str) -> ObjectInfo:
        if key not in self.objects:
            raise ObjectNotFound(key)
        return ObjectInfo(key, len(self.objects[key]))

    async def list(self, prefix: str) -> List[ObjectInfo]:
        if prefix and not prefix.endswith("/"):
            prefix += "/"
        return [
            ObjectInfo(key, len(data))
            for key, data in self.objects.items()
            if key.startswith(prefix)
        ]
