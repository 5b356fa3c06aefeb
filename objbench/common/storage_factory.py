"""
Factory module for creating storage targets from URIs.
"""

import logging
import os
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

# Suppress boto3/botocore logging BEFORE importing any boto3-related modules
logging.getLogger('botocore').setLevel(logging.CRITICAL)
logging.getLogger('botocore.credentials').setLevel(logging.CRITICAL)
logging.getLogger('boto3').setLevel(logging.CRITICAL)
logging.getLogger('aioboto3').setLevel(logging.CRITICAL)
logging.getLogger('aiobotocore').setLevel(logging.CRITICAL)
logging.getLogger('urllib3').setLevel(logging.CRITICAL)

from objbench.common.errors import BackendUnavailable
from objbench.systems.aws import AWSTarget
from objbench.systems.base import StorageTarget
from objbench.systems.local import LocalFileTarget
from objbench.systems.memory import MemoryTarget
from objbench.systems.r2 import R2Target

logger = logging.getLogger(__name__)

OBJECT_STORE_TARGETS = {
    "s3": AWSTarget,
    "r2": R2Target,
}


def create_storage_target(uri: str, concurrency: int = 1,
                          request_timeout: Optional[float] = None) -> Tuple[StorageTarget, str]:
    """Create the storage target for a URI and return it with the object key.

    Supported forms:
        file:///abs/path or a plain path   -> LocalFileTarget, key is the path
        s3://bucket/key                    -> AWSTarget
        r2://bucket/key                    -> R2Target
        memory://key                       -> MemoryTarget (empty, per process)

    Args:
        uri: Storage URI
        concurrency: Expected number of concurrent requests (for pool sizing)
        request_timeout: Client read timeout in seconds for object stores
            (default: from configuration)

    Returns:
        Tuple of (storage target, object key or prefix)

    Raises:
        BackendUnavailable: If the URI cannot be parsed or its scheme is unsupported
    """
    if not uri:
        raise BackendUnavailable("Empty storage URI")

    parsed = urlparse(uri)
    scheme = parsed.scheme.lower()

    if scheme in ("", "file"):
        if parsed.netloc not in ("", "localhost"):
            raise BackendUnavailable(f"Remote hosts are not supported for file URIs: {uri}")
        path = unquote(parsed.path) if scheme else uri
        if not path:
            raise BackendUnavailable(f"No path in URI: {uri}")
        return LocalFileTarget(uri), os.path.abspath(path)

    if scheme in OBJECT_STORE_TARGETS:
        bucket = parsed.netloc
        if not bucket:
            raise BackendUnavailable(f"No bucket in URI: {uri}")
        key = unquote(parsed.path).lstrip("/")
        target_class = OBJECT_STORE_TARGETS[scheme]
        return target_class(
            uri, bucket_name=bucket, concurrency=concurrency, request_timeout=request_timeout
        ), key

    if scheme == "memory":
        key = unquote(parsed.netloc + parsed.path).lstrip("/")
        return MemoryTarget(uri), key

    raise BackendUnavailable(
        f"Unsupported storage scheme '{scheme}' in {uri}. "
        f"Must be one of: file, {', '.join(OBJECT_STORE_TARGETS)}, memory."
    )
