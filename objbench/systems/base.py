"""
Base interface for storage targets addressed by a URI.
"""

import logging
import posixpath
from typing import AsyncIterator, Iterable, List, NamedTuple, Union

from objbench.common.errors import BackendUnavailable, ObjectNotFound

logger = logging.getLogger(__name__)


class ObjectInfo(NamedTuple):
    key: str
    size: int


class StorageTarget:
    """Uniform byte-addressable access to a storage backend.

    Subclasses implement ``write``, ``read_range``, ``head`` and ``list``.
    Writes are whole-object: a reader never observes a partially written
    object. ``read_range`` returns exactly the requested bytes or raises.
    Targets are used as async context managers so that clients and thread
    pools are opened and released around a run.
    """

    scheme: str = ""

    def __init__(self, uri: str):
        self.uri = uri

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def write(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    async def write_stream(
        self, key: str, chunks: Union[Iterable[bytes], AsyncIterator[bytes]], total_size: int
    ) -> None:
        """Write an object from a stream of chunks.

        The default implementation buffers the stream and calls ``write``;
        backends that can stream override it.
        """
        if hasattr(chunks, "__aiter__"):
            parts = [chunk async for chunk in chunks]
        else:
            parts = list(chunks)
        data = b"".join(parts)
        if len(data) != total_size:
            logger.warning(f"Stream for {key} produced {len(data)} bytes, expected {total_size}")
        await self.write(key, data)

    async def read_range(self, key: str, offset: int, length: int) -> bytes:
        raise NotImplementedError

    async def read_full(self, key: str) -> bytes:
        info = await self.head(key)
        if info.size == 0:
            return b""
        return await self.read_range(key, 0, info.size)

    async def head(self, key: str) -> ObjectInfo:
        raise NotImplementedError

    async def list(self, prefix: str) -> List[ObjectInfo]:
        raise NotImplementedError

    async def inspect_location(self, key: str) -> List[ObjectInfo]:
        """Return the object at ``key``, or every object under it as a prefix."""
        try:
            return [await self.head(key)]
        except ObjectNotFound:
            objects = sorted(await self.list(key), key=lambda info: info.key)
            if not objects:
                raise BackendUnavailable(f"No object or prefix found at {self.uri}")
            logger.info(f"{key} is a prefix holding {len(objects)} objects")
            return objects

    def join_key(self, base: str, *parts: str) -> str:
        return posixpath.join(base, *parts) if base else posixpath.join(*parts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.uri!r})"
