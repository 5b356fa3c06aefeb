"""
Simple Prometheus metrics exporter for benchmark runs.
"""

import logging
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from objbench.configuration import DEFAULT_METRICS_PORT
from objbench.persistence.record import TransferRecord

logger = logging.getLogger(__name__)


class PrometheusExporter:
    """Exposes transfer counters and latency while a scenario runs."""

    def __init__(self, port: int = DEFAULT_METRICS_PORT, registry: CollectorRegistry = None):
        self.port = port
        self.registry = registry or CollectorRegistry()
        self.server_started = False

        # Define metrics
        self.requests_total = Counter(
            'objbench_requests_total', 'Total transfer attempts',
            ['operation', 'outcome'], registry=self.registry,
        )
        self.request_duration = Histogram(
            'objbench_request_duration_seconds', 'Transfer attempt duration',
            ['operation'], registry=self.registry,
        )
        self.bytes_transferred = Counter(
            'objbench_bytes_transferred_total', 'Total bytes transferred',
            ['operation'], registry=self.registry,
        )
        self.concurrency = Gauge(
            'objbench_concurrency', 'Configured concurrency level', registry=self.registry,
        )

    def start_server(self):
        """Start the Prometheus HTTP server."""
        if not self.server_started:
            start_http_server(self.port, registry=self.registry)
            self.server_started = True
            logger.info(f"Prometheus server started on port {self.port}")

    def record_transfer(self, record: TransferRecord):
        """Record one transfer attempt."""
        self.requests_total.labels(operation=record.operation, outcome=record.outcome).inc()
        self.request_duration.labels(operation=record.operation).observe(record.latency_ms / 1000)
        if record.bytes:
            self.bytes_transferred.labels(operation=record.operation).inc(record.bytes)

    def update_concurrency(self, concurrency: int):
        self.concurrency.set(concurrency)
