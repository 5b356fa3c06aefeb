"""
Upload workloads: a single test object or many objects under one prefix.
"""

import logging
from typing import Optional

from objbench.algorithms.upload_planner import UploadPlanner
from objbench.common.errors import InvalidScenario
from objbench.common.scenario import BenchmarkScenario, WorkloadKind
from objbench.common.storage_factory import create_storage_target
from objbench.persistence.parquet import ParquetPersistence
from objbench.persistence.recorder import ResultRecord, ResultRecorder

logger = logging.getLogger(__name__)


class Uploader:
    """Runs the upload and upload-multiple workloads."""

    def __init__(self, scenario: BenchmarkScenario, records_dir: Optional[str] = None,
                 exporter=None):
        if scenario.workload not in (WorkloadKind.UPLOAD, WorkloadKind.UPLOAD_MULTIPLE):
            raise InvalidScenario(f"Uploader cannot run a {scenario.workload.value} workload")
        self.scenario = scenario.validate()
        self.records_dir = records_dir
        self.exporter = exporter
        self.storage_system, self.object_key = create_storage_target(scenario.uri)

        if scenario.workload == WorkloadKind.UPLOAD and not self.object_key:
            raise InvalidScenario(f"URI must name an object to upload: {scenario.uri}")

        logger.info(f"Initialized uploader for {scenario.uri}")

    async def upload(self) -> ResultRecord:
        """Upload the test data and return the scenario's result record."""
        recorder = ResultRecorder(self.scenario, exporter=self.exporter)

        async with self.storage_system:
            planner = UploadPlanner(self.storage_system, recorder)
            if self.scenario.workload == WorkloadKind.UPLOAD:
                logger.info(f"Uploading {self.object_key} ({self.scenario.object_size} bytes)")
                result = await planner.upload_data(self.object_key, self.scenario.object_size)
            else:
                result = await planner.upload_multiple(
                    self.object_key,
                    self.scenario.num_objects,
                    self.scenario.object_size,
                    self.scenario.prefix_mode,
                )

        if self.records_dir:
            path = ParquetPersistence(self.records_dir).save_to_file(
                recorder.snapshot(), filename_prefix=self.scenario.workload.value
            )
            logger.info(f"Saved transfer records to {path}")

        return result
