"""
Tests for the simulated columnar page reads.
"""

import os
import sys
import unittest

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from objbench.algorithms.columnar import (
    ColumnarReadSimulator,
    Page,
    interleave,
    plan_column,
    plan_pages,
)
from objbench.common.errors import InvalidScenario
from objbench.common.scenario import BenchmarkScenario, WorkloadKind
from objbench.persistence.recorder import ResultRecorder
from objbench.systems.base import ObjectInfo
from objbench.systems.memory import MemoryTarget


class RecordingTarget(MemoryTarget):
    """Remembers the order in which ranges were requested."""

    def __init__(self, objects):
        super().__init__(objects=objects)
        self.requests = []

    async def read_range(self, key, offset, length):
        self.requests.append((key, offset, length))
        return await super().read_range(key, offset, length)


def columnar_recorder(page_sizes, concurrency=4):
    scenario = BenchmarkScenario(
        workload=WorkloadKind.COLUMNAR,
        uri="memory://table.bin",
        concurrency=concurrency,
        page_sizes=tuple(page_sizes),
    )
    return ResultRecorder(scenario)


class TestPagePlanning(unittest.TestCase):
    """Test how columns are cut into pages."""

    def test_two_columns_over_ten_thousand_bytes(self):
        columns = plan_pages(10000, [4096, 65536])

        self.assertEqual([page.length for page in columns[0]], [4096, 4096, 1808])
        self.assertEqual([page.offset for page in columns[0]], [0, 4096, 8192])
        self.assertEqual([page.length for page in columns[1]], [10000])

    def test_every_column_covers_the_object(self):
        for size in (1, 4095, 4096, 4097, 100000):
            for page_size in (1, 512, 4096, 65536):
                with self.subTest(size=size, page_size=page_size):
                    pages = plan_column(0, page_size, size)
                    self.assertEqual(sum(page.length for page in pages), size)
                    offsets = [page.offset for page in pages]
                    self.assertEqual(offsets, sorted(offsets))
                    self.assertTrue(all(page.length <= page_size for page in pages))

    def test_page_larger_than_object(self):
        """Test that an oversized page yields one page of the whole object."""
        self.assertEqual(plan_column(2, 1 << 20, 1000), [Page(2, 1 << 20, 0, 1000)])

    def test_empty_object_has_no_pages(self):
        self.assertEqual(plan_pages(0, [4096, 8192]), [[], []])

    def test_rejects_invalid_page_sizes(self):
        for page_sizes in ([], [0], [4096, 0], [-1]):
            with self.subTest(page_sizes=page_sizes):
                with self.assertRaises(InvalidScenario):
                    plan_pages(1000, page_sizes)

    def test_interleave_round_robin(self):
        columns = plan_pages(10000, [4096, 65536, 5000])
        order = [(page.column, page.offset) for page in interleave(columns)]

        self.assertEqual(order, [
            (0, 0), (1, 0), (2, 0),
            (0, 4096), (2, 5000),
            (0, 8192),
        ])


class TestColumnarReadSimulator(unittest.IsolatedAsyncioTestCase):
    """Test columnar reads end to end against an in-memory target."""

    def setUp(self):
        self.data = bytes(range(256)) * 40  # 10240 bytes
        self.target = RecordingTarget({"table.bin": self.data})
        self.info = ObjectInfo("table.bin", len(self.data))

    async def test_reads_every_column_in_full(self):
        page_sizes = [4096, 65536, 1000]
        simulator = ColumnarReadSimulator(self.target, columnar_recorder(page_sizes),
                                          page_sizes, concurrency=4, max_retries=0)

        result = await simulator.read(self.info)

        self.assertEqual(result.total_bytes, len(self.data) * 3)
        self.assertEqual(result.details['num_columns'], 3)
        self.assertEqual(result.details['pages_per_column'], [3, 1, 11])
        self.assertEqual(result.transfers, 15)
        self.assertLessEqual(result.peak_in_flight, 4)

        self.assertEqual([column['column'] for column in result.columns], [0, 1, 2])
        self.assertEqual([column['pages'] for column in result.columns], [3, 1, 11])
        self.assertTrue(all(column['bytes'] == len(self.data) for column in result.columns))

    async def test_pages_of_a_column_are_requested_in_order(self):
        page_sizes = [1024, 3000]
        simulator = ColumnarReadSimulator(self.target, columnar_recorder(page_sizes, 1),
                                          page_sizes, concurrency=1)

        await simulator.read(self.info)

        first_column = [offset for _, offset, length in self.target.requests if length <= 1024]
        self.assertEqual(first_column, sorted(first_column))
        self.assertEqual(self.target.requests[0], ("table.bin", 0, 1024))
        self.assertEqual(self.target.requests[1], ("table.bin", 0, 3000))

    async def test_repeated_runs_issue_identical_requests(self):
        page_sizes = [4096, 2048]
        for _ in range(2):
            simulator = ColumnarReadSimulator(self.target, columnar_recorder(page_sizes, 1),
                                              page_sizes, concurrency=1)
            await simulator.read(self.info)

        half = len(self.target.requests) // 2
        self.assertEqual(self.target.requests[:half], self.target.requests[half:])

    def test_zero_page_size_rejected_before_any_read(self):
        with self.assertRaises(InvalidScenario):
            ColumnarReadSimulator(self.target, columnar_recorder([4096]), [4096, 0],
                                  concurrency=2)
        self.assertEqual(self.target.requests, [])


if __name__ == '__main__':
    unittest.main()
