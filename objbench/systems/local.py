"""
Local filesystem storage target.
"""

import asyncio
import logging
import os
import stat
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import AsyncIterator, Iterable, List, Optional, Union

from objbench.common.errors import BackendUnavailable, ObjectNotFound, ShortRead
from objbench.configuration import LOCAL_IO_THREADS
from objbench.systems.base import ObjectInfo, StorageTarget

logger = logging.getLogger(__name__)

# Objects get the permissions a plain open() would give them
_UMASK = os.umask(0)
os.umask(_UMASK)
FILE_MODE = 0o666 & ~_UMASK


class LocalFileTarget(StorageTarget):
    """Storage target backed by files on a local path.

    Keys are filesystem paths. Blocking file I/O runs on a dedicated thread
    pool so range reads issued by concurrent workers proceed in parallel. A
    cancelled call (for example on timeout) returns only once its thread is
    done, so a concurrency permit held by the caller covers the whole read.
    """

    scheme = "file"

    def __init__(self, uri: str, io_threads: Optional[int] = None):
        super().__init__(uri)
        self.io_threads = io_threads or LOCAL_IO_THREADS
        self._executor: Optional[ThreadPoolExecutor] = None

    async def __aenter__(self):
        self._executor = ThreadPoolExecutor(
            max_workers=self.io_threads, thread_name_prefix="local-io"
        )
        logger.info(f"Initialized local storage with {self.io_threads} I/O threads")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    async def _run(self, func, *args):
        if self._executor is None:
            raise RuntimeError("Local storage not initialized. Use async context manager.")
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, func, *args)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # The thread cannot be interrupted; hold the caller until it finishes
            await asyncio.wait([future])
            raise

    async def write(self, key: str, data: bytes) -> None:
        await self._run(self._write_file, key, [data])

    async def write_stream(
        self, key: str, chunks: Union[Iterable[bytes], AsyncIterator[bytes]], total_size: int
    ) -> None:
        if hasattr(chunks, "__aiter__"):
            await super().write_stream(key, chunks, total_size)
            return
        written = await self._run(self._write_file, key, chunks)
        if written != total_size:
            logger.warning(f"Wrote {written} bytes to {key}, expected {total_size}")

    @staticmethod
    def _write_file(path: str, chunks: Iterable[bytes]) -> int:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

        # Write beside the target and rename so readers never see a partial object
        fd, tmp_path = tempfile.mkstemp(prefix=".objbench-", dir=directory)
        written = 0
        try:
            with os.fdopen(fd, "wb") as fh:
                os.fchmod(fh.fileno(), FILE_MODE)
                for chunk in chunks:
                    fh.write(chunk)
                    written += len(chunk)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return written

    async def read_range(self, key: str, offset: int, length: int) -> bytes:
        data = await self._run(self._read_file, key, offset, length)
        if len(data) != length:
            raise ShortRead(key, offset, length, len(data))
        return data

    @staticmethod
    def _read_file(path: str, offset: int, length: int) -> bytes:
        with open(path, "rb") as fh:
            fh.seek(offset)
            return fh.read(length)

    async def head(self, key: str) -> ObjectInfo:
        try:
            st = await self._run(os.stat, key)
        except FileNotFoundError:
            raise ObjectNotFound(key)
        except OSError as e:
            raise BackendUnavailable(f"Cannot open {key}: {e}") from e
        # Directories are prefixes, not objects
        if stat.S_ISDIR(st.st_mode):
            raise ObjectNotFound(key)
        return ObjectInfo(key, st.st_size)

    async def list(self, prefix: str) -> List[ObjectInfo]:
        return await self._run(self._walk, prefix)

    @staticmethod
    def _walk(prefix: str) -> List[ObjectInfo]:
        if not os.path.isdir(prefix):
            return []
        objects = []
        for root, _dirs, files in os.walk(prefix):
            for name in files:
                if name.startswith(".objbench-"):
                    continue
                path = os.path.join(root, name)
                objects.append(ObjectInfo(path, os.path.getsize(path)))
        return objects
