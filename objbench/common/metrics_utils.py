"""
Shared utilities for benchmark metrics calculations: throughput and latency distributions.
"""

import logging
from typing import Dict, Iterable, List, Optional

import pandas as pd

from objbench.configuration import (
    BITS_PER_BYTE,
    BYTES_PER_MB,
    GIGABITS_PER_GB,
    LATENCY_PERCENTILES,
)
from objbench.persistence.record import OUTCOME_SUCCESS, TransferRecord

logger = logging.getLogger(__name__)

RECORD_COLUMNS = [
    'worker_id', 'object_key', 'range_start', 'range_len', 'bytes', 'latency_ms',
    'outcome', 'concurrency', 'attempt', 'column', 'operation', 'error',
    'start_ts', 'end_ts',
]


def calculate_throughput_gbps(total_bytes: float, duration_seconds: float) -> float:
    """
    Calculate throughput in gigabits per second (Gbps) from bytes and duration.

    Args:
        total_bytes: Total bytes transferred
        duration_seconds: Duration in seconds

    Returns:
        Throughput in gigabits per second (Gbps)
    """
    if duration_seconds <= 0:
        return 0.0
    return (total_bytes * BITS_PER_BYTE) / (duration_seconds * GIGABITS_PER_GB)


def calculate_throughput_mbps(total_bytes: float, duration_seconds: float) -> float:
    """Throughput in mebibytes per second (MiB/s)."""
    if duration_seconds <= 0:
        return 0.0
    return total_bytes / BYTES_PER_MB / duration_seconds


def records_to_dataframe(records: Iterable[TransferRecord]) -> pd.DataFrame:
    """Convert transfer records to a DataFrame in record order."""
    return pd.DataFrame([record.to_dict() for record in records], columns=RECORD_COLUMNS)


def percentile_key(quantile: float) -> str:
    """Name a quantile the way result records do, e.g. 0.95 -> 'p95', 0.999 -> 'p99.9'."""
    return f"p{quantile * 100:g}"


def calculate_latency_stats(
    data: pd.DataFrame,
    latency_col: str = 'latency_ms',
    percentiles: Optional[List[float]] = None,
) -> Dict[str, float]:
    """
    Calculate latency statistics (count, min, max, mean and percentiles) from a DataFrame.

    Only successful attempts are included. Samples are stable-sorted before
    interpolation so the same samples always produce the same numbers.

    Args:
        data: DataFrame with latency data (must have an outcome column)
        latency_col: Column name for latency values (default: 'latency_ms')
        percentiles: Quantiles to report (default: from configuration)

    Returns:
        Dictionary with count, min, max, mean and one pNN entry per quantile
    """
    if percentiles is None:
        percentiles = LATENCY_PERCENTILES

    if len(data) > 0 and 'outcome' in data.columns:
        data = data[data['outcome'] == OUTCOME_SUCCESS]

    if len(data) == 0 or latency_col not in data.columns:
        stats = {'count': 0, 'min': 0.0, 'max': 0.0, 'mean': 0.0}
        stats.update({percentile_key(q): 0.0 for q in percentiles})
        return stats

    latencies = data[latency_col].astype(float).sort_values(kind='stable').reset_index(drop=True)

    stats = {
        'count': int(len(latencies)),
        'min': float(latencies.iloc[0]),
        'max': float(latencies.iloc[-1]),
        'mean': float(latencies.mean()),
    }
    for q in percentiles:
        stats[percentile_key(q)] = float(latencies.quantile(q, interpolation='linear'))
    return stats
