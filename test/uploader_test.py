"""
Test script for the upload workloads and synthetic payload generation.
"""

import os
import random
import re
import sys
import tempfile
import unittest
from unittest.mock import patch

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from objbench.algorithms.upload_planner import (
    UploadPlanner,
    object_keys,
    object_name,
    random_prefix,
)
from objbench.commands.uploader import Uploader
from objbench.common.errors import InvalidScenario, TransientTransferError
from objbench.common.payload import PayloadGenerator
from objbench.common.scenario import BenchmarkScenario, PrefixMode, WorkloadKind
from objbench.persistence.record import OUTCOME_ERROR
from objbench.persistence.recorder import ResultRecorder
from objbench.systems.memory import MemoryTarget


class FailingTarget(MemoryTarget):
    async def write(self, key, data):
        raise TransientTransferError(f"write to {key} rejected")


def upload_recorder(workload=WorkloadKind.UPLOAD_MULTIPLE, size=1000, num_objects=10):
    scenario = BenchmarkScenario(
        workload=workload, uri="memory://data", object_size=size, num_objects=num_objects
    )
    return ResultRecorder(scenario)


class TestPayloadGenerator(unittest.TestCase):
    """Test cases for PayloadGenerator."""

    def test_chunks_sum_to_size(self):
        generator = PayloadGenerator(chunk_size=1000)
        chunks = list(generator.chunks(2500))

        self.assertEqual([len(chunk) for chunk in chunks], [1000, 1000, 500])
        self.assertTrue(all(isinstance(chunk, bytes) for chunk in chunks))

    def test_generator_is_lazy(self):
        """Test that chunks() returns a generator rather than a buffer."""
        chunks = PayloadGenerator(chunk_size=10).chunks(100)
        self.assertTrue(hasattr(chunks, '__next__'))
        self.assertEqual(len(next(chunks)), 10)

    def test_seed_makes_payload_reproducible(self):
        first = PayloadGenerator(seed=42).generate(4096)
        second = PayloadGenerator(seed=42).generate(4096)
        self.assertEqual(first, second)
        self.assertEqual(len(first), 4096)

    def test_zero_size(self):
        self.assertEqual(PayloadGenerator().generate(0), b"")


class TestKeyNaming(unittest.TestCase):
    """Test object key generation for multi-object uploads."""

    def setUp(self):
        self.join = MemoryTarget().join_key

    def test_sequential_keys_sort_in_index_order(self):
        keys = object_keys("data", 12, PrefixMode.SEQUENTIAL, self.join)

        self.assertEqual(keys[0], "data/object_00.bin")
        self.assertEqual(keys[11], "data/object_11.bin")
        self.assertEqual(keys, sorted(keys))
        indices = {int(re.search(r"object_(\d+)\.bin$", key).group(1)) for key in keys}
        self.assertEqual(indices, set(range(12)))

    def test_object_name_padding(self):
        self.assertEqual(object_name(3, 1), "object_3.bin")
        self.assertEqual(object_name(3, 10), "object_3.bin")
        self.assertEqual(object_name(3, 11), "object_03.bin")
        self.assertEqual(object_name(42, 1000), "object_042.bin")

    def test_random_prefixes(self):
        keys = object_keys("data", 50, PrefixMode.RANDOM, self.join, rng=random.Random(3))

        self.assertEqual(len(set(keys)), 50)
        for key in keys:
            base, prefix, name = key.split("/")
            self.assertEqual(base, "data")
            self.assertRegex(prefix, r"^[A-Za-z0-9]{8}$")
            self.assertRegex(name, r"^object_\d+\.bin$")

    def test_random_prefix_alphabet(self):
        prefix = random_prefix(random.Random(0))
        self.assertEqual(len(prefix), 8)
        self.assertTrue(prefix.isalnum())

    def test_empty_base(self):
        self.assertEqual(object_keys("", 1, PrefixMode.SEQUENTIAL, self.join), ["object_0.bin"])


class TestUploadPlanner(unittest.IsolatedAsyncioTestCase):
    """Test cases for UploadPlanner."""

    def setUp(self):
        self.target = MemoryTarget()
        self.payload = PayloadGenerator(chunk_size=64, seed=1)

    async def test_upload_data(self):
        recorder = upload_recorder(WorkloadKind.UPLOAD, size=1000, num_objects=1)
        planner = UploadPlanner(self.target, recorder, payload=self.payload)

        result = await planner.upload_data("test.bin", 1000)

        self.assertEqual(len(self.target.objects["test.bin"]), 1000)
        self.assertEqual(result.total_bytes, 1000)
        self.assertEqual(result.transfers, 1)
        self.assertEqual(recorder.records[0].operation, "write")

    async def test_upload_multiple_sequential(self):
        recorder = upload_recorder()
        planner = UploadPlanner(self.target, recorder, payload=self.payload)

        result = await planner.upload_multiple("data", 10, 1000)

        self.assertEqual(sorted(self.target.objects),
                         [f"data/object_{i}.bin" for i in range(10)])
        self.assertTrue(all(len(data) == 100 for data in self.target.objects.values()))
        self.assertEqual(result.total_bytes, 1000)
        self.assertEqual(result.transfers, 10)
        self.assertEqual(result.details['size_per_object'], 100)
        self.assertEqual(result.details['first_key'], "data/object_0.bin")
        self.assertEqual(result.details['last_key'], "data/object_9.bin")

    async def test_upload_multiple_random_prefixes(self):
        planner = UploadPlanner(self.target, upload_recorder(), payload=self.payload,
                                rng=random.Random(11))

        await planner.upload_multiple("data", 10, 1000, PrefixMode.RANDOM)

        prefixes = {key.split("/")[1] for key in self.target.objects}
        self.assertEqual(len(self.target.objects), 10)
        self.assertEqual(len(prefixes), 10)

    async def test_invalid_parameters_rejected_before_io(self):
        planner = UploadPlanner(self.target, upload_recorder(), payload=self.payload)

        for num_objects, size in ((0, 1000), (10, 0), (3, 1000), (-1, 1000)):
            with self.subTest(num_objects=num_objects, size=size):
                with self.assertRaises(InvalidScenario):
                    await planner.upload_multiple("data", num_objects, size)

        self.assertEqual(self.target.objects, {})

    async def test_write_failure_propagates(self):
        """Test that a failed write is recorded and aborts the upload."""
        recorder = upload_recorder()
        planner = UploadPlanner(FailingTarget(), recorder, payload=self.payload)

        with self.assertRaises(TransientTransferError):
            await planner.upload_multiple("data", 10, 1000)

        self.assertEqual(len(recorder.records), 1)
        self.assertEqual(recorder.records[0].outcome, OUTCOME_ERROR)
        self.assertFalse(recorder.finalized)


class TestUploader(unittest.IsolatedAsyncioTestCase):
    """Test the upload command against a local directory."""

    async def test_upload_multiple_to_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            scenario = BenchmarkScenario(
                workload=WorkloadKind.UPLOAD_MULTIPLE,
                uri=f"file://{tmp}/data",
                object_size=3000,
                num_objects=3,
            )
            result = await Uploader(scenario).upload()

            names = sorted(os.listdir(os.path.join(tmp, "data")))
            self.assertEqual(names, ["object_0.bin", "object_1.bin", "object_2.bin"])
            self.assertEqual(result.total_bytes, 3000)
            for name in names:
                self.assertEqual(os.path.getsize(os.path.join(tmp, "data", name)), 1000)

    async def test_records_saved_when_requested(self):
        with tempfile.TemporaryDirectory() as tmp:
            scenario = BenchmarkScenario(
                workload=WorkloadKind.UPLOAD, uri=f"file://{tmp}/test.bin", object_size=512
            )
            records_dir = os.path.join(tmp, "records")
            with patch("objbench.commands.uploader.ParquetPersistence") as mock_persistence:
                await Uploader(scenario, records_dir=records_dir).upload()

            mock_persistence.assert_called_once_with(records_dir)
            mock_persistence.return_value.save_to_file.assert_called_once()

    def test_rejects_read_workloads(self):
        scenario = BenchmarkScenario(workload=WorkloadKind.DOWNLOAD, uri="memory://x", concurrency=1)
        with self.assertRaises(InvalidScenario):
            Uploader(scenario)

    def test_rejects_indivisible_size(self):
        scenario = BenchmarkScenario(
            workload=WorkloadKind.UPLOAD_MULTIPLE, uri="memory://data", object_size=10, num_objects=3
        )
        with self.assertRaises(InvalidScenario):
            Uploader(scenario)


if __name__ == '__main__':
    unittest.main()
