"""
AWS S3 storage target.
"""

from objbench.systems.object_store import ObjectStoreTarget
from objbench.configuration import (
    S3_ENDPOINT,
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_REGION,
)
import logging

logger = logging.getLogger(__name__)


class AWSTarget(ObjectStoreTarget):
    """AWS S3 (or any S3-compatible endpoint set in S3_ENDPOINT)."""

    scheme = "s3"

    def __init__(self, uri: str, bucket_name: str, credentials: dict = None, concurrency: int = 1,
                 request_timeout: float = None):
        if credentials is None:
            credentials = {
                "access_key_id": AWS_ACCESS_KEY_ID,
                "secret_access_key": AWS_SECRET_ACCESS_KEY,
                "region_name": AWS_REGION,
            }

        super().__init__(
            uri,
            bucket_name=bucket_name,
            endpoint=S3_ENDPOINT,
            credentials=credentials,
            concurrency=concurrency,
            request_timeout=request_timeout,
        )
        logger.info("Initialized AWS S3 target")
