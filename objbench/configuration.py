"""
Configuration constants for the storage I/O benchmark.

This module contains all configuration parameters including:
- Cloud credentials and endpoints
- Workload defaults (object sizes, concurrency, page sizes)
- Retry and timeout policy for range reads
- File size constants and conversion factors
"""

import os
from typing import List

# =============================================================================
# CLOUD STORAGE CONFIGURATION
# =============================================================================

# AWS S3 credentials and configuration
S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "")
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
AWS_REGION: str = os.getenv("AWS_REGION", "eu-north-1")

# Cloudflare R2 credentials and configuration
R2_ENDPOINT: str = os.getenv("R2_ENDPOINT", "")
R2_ACCESS_KEY_ID: str = os.getenv("R2_ACCESS_KEY_ID", "")
R2_SECRET_ACCESS_KEY: str = os.getenv("R2_SECRET_ACCESS_KEY", "")

# Connection pool sizing for the S3 client
MAX_POOL_CONNECTIONS: int = 2000
CONNECT_TIMEOUT_SECONDS: int = 5

# =============================================================================
# FILE SIZE CONSTANTS
# =============================================================================

BYTES_PER_MB: int = 1024 * 1024
BYTES_PER_GB: int = 1024 * 1024 * 1024
BITS_PER_BYTE: int = 8
GIGABITS_PER_GB: int = 1_000_000_000  # 1 Gigabit = 1,000,000,000 bits
MS_PER_SECOND: int = 1000

# =============================================================================
# WORKLOAD DEFAULTS
# =============================================================================

# upload-data
DEFAULT_UPLOAD_SIZE: int = 100 * BYTES_PER_MB

# upload-multiple
DEFAULT_NUM_OBJECTS: int = 10
DEFAULT_MULTI_UPLOAD_SIZE: int = 10 * BYTES_PER_GB
RANDOM_PREFIX_LENGTH: int = 8
OBJECT_NAME_TEMPLATE: str = "object_{index}.bin"

# download / columnar
DEFAULT_PARALLEL_DOWNLOADS: int = 10
DEFAULT_PAGE_SIZES: List[int] = [65536, 65536, 65536]

# Payload batches are generated and written this many bytes at a time
UPLOAD_CHUNK_BYTES: int = 10 * BYTES_PER_MB

# S3 requires parts of at least 5MB except the last one
MULTIPART_PART_BYTES: int = 10 * BYTES_PER_MB
MULTIPART_UPLOAD_WORKERS: int = 4

# =============================================================================
# ERROR HANDLING AND TIMEOUTS
# =============================================================================

MAX_RETRIES: int = int(os.getenv("OBJBENCH_MAX_RETRIES", "3"))  # Retries after the first attempt
RETRY_DELAY_SECONDS: float = float(os.getenv("OBJBENCH_RETRY_DELAY_SECONDS", "0"))  # 0 = immediate retry
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("OBJBENCH_REQUEST_TIMEOUT_SECONDS", "120"))

# =============================================================================
# HTTP STATUS CODES
# =============================================================================

HTTP_NOT_FOUND_STATUS: int = 404
HTTP_THROTTLING_STATUSES = (429, 503)

# =============================================================================
# LOCAL BACKEND
# =============================================================================

LOCAL_IO_THREADS: int = int(os.getenv("OBJBENCH_LOCAL_IO_THREADS", "64"))

# =============================================================================
# RESULT RECORDING
# =============================================================================

LATENCY_PERCENTILES: List[float] = [0.5, 0.9, 0.95, 0.99]
PROGRESS_INTERVAL: int = 100  # Log progress every N completed range reads

# =============================================================================
# CLI DEFAULTS
# =============================================================================

DEFAULT_LOG_LEVEL: str = os.getenv("OBJBENCH_LOG_LEVEL", "INFO")
DEFAULT_METRICS_PORT: int = 9100
