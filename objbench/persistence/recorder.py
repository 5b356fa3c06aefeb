"""
Result recording: accumulate transfer records and finalize one result per scenario.
"""

import json
import logging
import sys
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO

from objbench.common.metrics_utils import (
    calculate_latency_stats,
    calculate_throughput_gbps,
    calculate_throughput_mbps,
    records_to_dataframe,
)
from objbench.common.scenario import BenchmarkScenario
from objbench.configuration import MS_PER_SECOND
from objbench.persistence.record import OUTCOME_SUCCESS, TransferRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResultRecord:
    """The structured summary of one benchmark scenario."""

    scenario: Dict[str, Any]
    total_bytes: int
    elapsed_us: int
    mbps: float
    throughput_gbps: float
    transfers: int
    attempts: int
    failed_attempts: int
    peak_in_flight: int
    latency_ms: Dict[str, float]
    columns: Optional[List[Dict[str, Any]]] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            **self.scenario,
            'total_bytes': self.total_bytes,
            'elapsed_us': self.elapsed_us,
            'mbps': self.mbps,
            'throughput_gbps': self.throughput_gbps,
            'transfers': self.transfers,
            'attempts': self.attempts,
            'failed_attempts': self.failed_attempts,
            'peak_in_flight': self.peak_in_flight,
            'latency_ms': self.latency_ms,
        }
        if self.columns is not None:
            data['columns'] = self.columns
        data.update(self.details)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def write(self, stream: TextIO = None) -> None:
        """Write the record as one newline-terminated JSON line."""
        stream = stream or sys.stdout
        stream.write(self.to_json() + "\n")
        stream.flush()


class ResultRecorder:
    """Accumulates transfer records for one scenario run.

    Safe to call ``record`` from several workers. ``finalize`` may be called
    exactly once; there is no way to obtain a partial result mid-scenario.
    """

    def __init__(self, scenario: BenchmarkScenario, exporter=None):
        self.scenario = scenario
        self.exporter = exporter
        self.records: List[TransferRecord] = []
        self.lock = threading.Lock()
        self._result: Optional[ResultRecord] = None

    def record(self, record: TransferRecord) -> None:
        """Add one attempt's record."""
        with self.lock:
            if self._result is not None:
                raise RuntimeError("Cannot record transfers after the result was finalized")
            self.records.append(record)

        if self.exporter is not None:
            self.exporter.record_transfer(record)

    @property
    def finalized(self) -> bool:
        return self._result is not None

    def snapshot(self) -> List[TransferRecord]:
        with self.lock:
            return list(self.records)

    def finalize(
        self,
        total_bytes: int,
        elapsed_seconds: float,
        peak_in_flight: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ) -> ResultRecord:
        """Fold every recorded transfer into the scenario's ResultRecord.

        Args:
            total_bytes: Bytes moved by the scenario (verified by the caller)
            elapsed_seconds: Wall-clock duration of the scenario
            peak_in_flight: Highest number of concurrent requests observed
            details: Workload-specific fields added to the record

        Returns:
            The finalized result record
        """
        with self.lock:
            if self._result is not None:
                raise RuntimeError("Result already finalized for this scenario")

            df = records_to_dataframe(self.records)
            attempts = len(df)
            succeeded = int((df['outcome'] == OUTCOME_SUCCESS).sum()) if attempts else 0

            columns = None
            if attempts and df['column'].notna().any():
                columns = []
                for column_index, column_df in df[df['column'].notna()].groupby('column', sort=True):
                    column_ok = column_df[column_df['outcome'] == OUTCOME_SUCCESS]
                    columns.append({
                        'column': int(column_index),
                        'pages': int(len(column_ok)),
                        'bytes': int(column_ok['bytes'].sum()),
                        'latency_ms': calculate_latency_stats(column_df),
                    })

            self._result = ResultRecord(
                scenario=self.scenario.to_dict(),
                total_bytes=int(total_bytes),
                elapsed_us=int(elapsed_seconds * MS_PER_SECOND * 1000),
                mbps=calculate_throughput_mbps(total_bytes, elapsed_seconds),
                throughput_gbps=calculate_throughput_gbps(total_bytes, elapsed_seconds),
                transfers=succeeded,
                attempts=attempts,
                failed_attempts=attempts - succeeded,
                peak_in_flight=int(peak_in_flight),
                latency_ms=calculate_latency_stats(df),
                columns=columns,
                details=dict(details or {}),
            )

        logger.info(
            f"{self.scenario.workload.value}: {total_bytes} bytes in {elapsed_seconds:.3f}s "
            f"({self._result.mbps:.1f} MiB/s), {succeeded}/{attempts} attempts succeeded"
        )
        return self._result
