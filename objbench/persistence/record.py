"""
Per-attempt transfer records.
"""

import time
from typing import Any, Dict, Optional

OUTCOME_SUCCESS = "success"
OUTCOME_ERROR = "error"
OUTCOME_TIMEOUT = "timeout"


class TransferRecord:
    """Data structure for one attempted range read or object write."""

    def __init__(self, worker_id, object_key, range_start, range_len,
                 bytes_transferred, latency_ms, outcome, concurrency,
                 attempt: int = 1, column: Optional[int] = None,
                 operation: str = "read", error: str = "",
                 start_ts: float = None, end_ts: float = None):
        self.worker_id = worker_id
        self.object_key = object_key
        self.range_start = range_start
        self.range_len = range_len
        self.bytes = bytes_transferred
        self.latency_ms = latency_ms
        self.outcome = outcome
        self.concurrency = concurrency
        self.attempt = attempt
        self.column = column
        self.operation = operation
        self.error = error
        self.start_ts = start_ts or time.time()
        self.end_ts = end_ts or time.time()

    @property
    def succeeded(self) -> bool:
        return self.outcome == OUTCOME_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'worker_id': self.worker_id,
            'object_key': self.object_key,
            'range_start': self.range_start,
            'range_len': self.range_len,
            'bytes': self.bytes,
            'latency_ms': self.latency_ms,
            'outcome': self.outcome,
            'concurrency': self.concurrency,
            'attempt': self.attempt,
            'column': self.column,
            'operation': self.operation,
            'error': self.error,
            'start_ts': self.start_ts,
            'end_ts': self.end_ts,
        }
