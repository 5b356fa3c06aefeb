"""
Read workloads: parallel whole-object download and columnar page reads.
"""

import logging
from typing import Optional

from objbench.algorithms.columnar import ColumnarReadSimulator
from objbench.algorithms.downloader import ParallelDownloader
from objbench.common.errors import InvalidScenario
from objbench.common.scenario import BenchmarkScenario, WorkloadKind
from objbench.common.storage_factory import create_storage_target
from objbench.persistence.parquet import ParquetPersistence
from objbench.persistence.recorder import ResultRecord, ResultRecorder

logger = logging.getLogger(__name__)


class BenchmarkRunner:
    """Benchmark runner for the download and columnar workloads."""

    def __init__(
        self,
        scenario: BenchmarkScenario,
        records_dir: Optional[str] = None,
        exporter=None,
        max_retries: Optional[int] = None,
        request_timeout: Optional[float] = None,
        retry_delay: Optional[float] = None,
    ):
        if scenario.workload not in (WorkloadKind.DOWNLOAD, WorkloadKind.COLUMNAR):
            raise InvalidScenario(f"BenchmarkRunner cannot run a {scenario.workload.value} workload")
        self.scenario = scenario.validate()
        self.records_dir = records_dir
        self.exporter = exporter
        self.max_retries = max_retries
        self.request_timeout = request_timeout
        self.retry_delay = retry_delay
        self.storage_system, self.object_key = create_storage_target(
            scenario.uri, concurrency=scenario.concurrency, request_timeout=request_timeout
        )

        logger.info(
            f"Initialized benchmark runner: {scenario.workload.value} against {scenario.uri} "
            f"with {scenario.concurrency} parallel downloads"
        )

    async def run_benchmark(self) -> ResultRecord:
        """Execute the scenario and return its result record."""
        recorder = ResultRecorder(self.scenario, exporter=self.exporter)
        if self.exporter is not None:
            self.exporter.update_concurrency(self.scenario.concurrency)

        retry_options = dict(
            max_retries=self.max_retries,
            request_timeout=self.request_timeout,
            retry_delay=self.retry_delay,
        )

        async with self.storage_system:
            objects = await self.storage_system.inspect_location(self.object_key)
            logger.info(
                f"Found {len(objects)} object(s), {sum(o.size for o in objects)} bytes"
            )

            if self.scenario.workload == WorkloadKind.DOWNLOAD:
                downloader = ParallelDownloader(
                    self.storage_system,
                    recorder,
                    self.scenario.concurrency,
                    block_size=self.scenario.block_size,
                    **retry_options,
                )
                result = await downloader.download(objects)
            else:
                if len(objects) != 1:
                    raise InvalidScenario(
                        f"Columnar reads need a single object, {self.scenario.uri} "
                        f"holds {len(objects)}"
                    )
                simulator = ColumnarReadSimulator(
                    self.storage_system,
                    recorder,
                    self.scenario.page_sizes,
                    self.scenario.concurrency,
                    **retry_options,
                )
                result = await simulator.read(objects[0])

        if self.records_dir:
            path = ParquetPersistence(self.records_dir).save_to_file(
                recorder.snapshot(), filename_prefix=self.scenario.workload.value
            )
            logger.info(f"Saved transfer records to {path}")

        return result
