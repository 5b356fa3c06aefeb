"""
Tests for chunk planning and the parallel whole-object download.
"""

import os
import sys
import unittest
from unittest.mock import AsyncMock, patch

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from objbench.algorithms.downloader import ParallelDownloader, plan_chunks
from objbench.algorithms.upload_planner import UploadPlanner
from objbench.common.errors import InvalidScenario, SizeMismatch
from objbench.common.payload import PayloadGenerator
from objbench.common.scenario import BenchmarkScenario, WorkloadKind
from objbench.persistence.recorder import ResultRecorder
from objbench.systems.base import ObjectInfo
from objbench.systems.memory import MemoryTarget


class SamplingTarget(MemoryTarget):
    """Tracks how many range reads are in progress at once."""

    def __init__(self, objects, read_delay=0.005):
        super().__init__(objects=objects, read_delay=read_delay)
        self.active = 0
        self.max_active = 0
        self.ranges = []

    async def read_range(self, key, offset, length):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            data = await super().read_range(key, offset, length)
        finally:
            self.active -= 1
        self.ranges.append((key, offset, length))
        return data


def download_recorder(concurrency):
    scenario = BenchmarkScenario(
        workload=WorkloadKind.DOWNLOAD, uri="memory://obj", concurrency=concurrency
    )
    return ResultRecorder(scenario)


def assert_covers(test, chunks, size):
    """Chunks are contiguous, non-overlapping and cover [0, size)."""
    expected_offset = 0
    for offset, length in chunks:
        test.assertEqual(offset, expected_offset)
        test.assertGreater(length, 0)
        expected_offset += length
    test.assertEqual(expected_offset, size)


class TestPlanChunks(unittest.TestCase):
    """Test splitting an object into range reads."""

    def test_even_split(self):
        self.assertEqual(plan_chunks(100, 4), [(0, 25), (25, 25), (50, 25), (75, 25)])

    def test_remainder_goes_to_first_chunks(self):
        """Test that the first size % concurrency chunks are one byte longer."""
        chunks = plan_chunks(10, 3)
        self.assertEqual(chunks, [(0, 4), (4, 3), (7, 3)])

    def test_coverage_for_many_shapes(self):
        for size in (1, 7, 1000, 1048576, 1048579):
            for concurrency in (1, 2, 3, 5, 16, 64):
                with self.subTest(size=size, concurrency=concurrency):
                    chunks = plan_chunks(size, concurrency)
                    assert_covers(self, chunks, size)
                    self.assertLessEqual(len(chunks), concurrency)
                    lengths = [length for _, length in chunks]
                    self.assertLessEqual(max(lengths) - min(lengths), 1)

    def test_object_smaller_than_concurrency(self):
        chunks = plan_chunks(3, 10)
        self.assertEqual(chunks, [(0, 1), (1, 1), (2, 1)])

    def test_empty_object(self):
        self.assertEqual(plan_chunks(0, 8), [])

    def test_block_size(self):
        chunks = plan_chunks(10, 3, block_size=4)
        self.assertEqual(chunks, [(0, 4), (4, 4), (8, 2)])
        assert_covers(self, plan_chunks(1048576, 5, block_size=65536), 1048576)

    def test_invalid_arguments(self):
        with self.assertRaises(InvalidScenario):
            plan_chunks(100, 0)
        with self.assertRaises(InvalidScenario):
            plan_chunks(100, 4, block_size=0)
        with self.assertRaises(InvalidScenario):
            plan_chunks(-1, 4)


class TestParallelDownloader(unittest.IsolatedAsyncioTestCase):
    """End-to-end downloads against an in-memory target."""

    async def test_upload_then_download(self):
        """Test a 1 MiB object read back with five parallel downloads."""
        size = 1048576
        store = MemoryTarget()
        upload_scenario = BenchmarkScenario(
            workload=WorkloadKind.UPLOAD, uri="memory://test.bin", object_size=size
        )
        planner = UploadPlanner(store, ResultRecorder(upload_scenario),
                                payload=PayloadGenerator(chunk_size=65536, seed=7))
        upload_result = await planner.upload_data("test.bin", size)
        self.assertEqual(upload_result.total_bytes, size)

        target = SamplingTarget(store.objects)
        recorder = download_recorder(5)
        downloader = ParallelDownloader(target, recorder, concurrency=5, max_retries=0)

        objects = await target.inspect_location("test.bin")
        result = await downloader.download(objects)

        self.assertEqual(result.total_bytes, size)
        self.assertEqual(result.transfers, 5)
        self.assertEqual(result.failed_attempts, 0)
        self.assertLessEqual(result.peak_in_flight, 5)
        self.assertLessEqual(target.max_active, 5)
        self.assertGreater(result.elapsed_us, 0)
        self.assertEqual(result.details['num_blocks'], 5)
        self.assertEqual(result.details['parallel_downloads'], 5)

        # Every byte is read exactly once
        ranges = sorted((offset, length) for _, offset, length in target.ranges)
        assert_covers(self, ranges, size)

    async def test_size_mismatch(self):
        target = MemoryTarget(objects={"obj": b"x" * 100})
        downloader = ParallelDownloader(target, download_recorder(4), concurrency=4)

        with patch.object(downloader.pool, "run", new=AsyncMock(return_value=99)):
            with self.assertRaises(SizeMismatch) as ctx:
                await downloader.download([ObjectInfo("obj", 100)])

        self.assertEqual(ctx.exception.expected, 100)
        self.assertEqual(ctx.exception.actual, 99)
        self.assertFalse(downloader.recorder.finalized)

    async def test_prefix_downloads_every_object(self):
        target = MemoryTarget(objects={
            "data/object_0.bin": b"a" * 300,
            "data/object_1.bin": b"b" * 500,
            "other/object_0.bin": b"c" * 1000,
        })
        recorder = download_recorder(3)
        downloader = ParallelDownloader(target, recorder, concurrency=3)

        objects = await target.inspect_location("data")
        self.assertEqual([info.key for info in objects], ["data/object_0.bin", "data/object_1.bin"])

        result = await downloader.download(objects)
        self.assertEqual(result.total_bytes, 800)
        self.assertEqual(result.details['num_objects'], 2)
        self.assertEqual(result.details['num_blocks'], 6)

    async def test_block_size_controls_request_count(self):
        target = MemoryTarget(objects={"obj": b"z" * 1000})
        downloader = ParallelDownloader(target, download_recorder(2), concurrency=2,
                                        block_size=100)

        result = await downloader.download([ObjectInfo("obj", 1000)])

        self.assertEqual(result.transfers, 10)
        self.assertEqual(result.details['block_size'], 100)
        self.assertLessEqual(result.peak_in_flight, 2)

    async def test_empty_object(self):
        target = MemoryTarget(objects={"empty": b""})
        downloader = ParallelDownloader(target, download_recorder(4), concurrency=4)

        result = await downloader.download([ObjectInfo("empty", 0)])

        self.assertEqual(result.total_bytes, 0)
        self.assertEqual(result.transfers, 0)


if __name__ == '__main__':
    unittest.main()
