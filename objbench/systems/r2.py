"""
Cloudflare R2 storage target.
"""

from objbench.common.errors import BackendUnavailable
from objbench.systems.object_store import ObjectStoreTarget
from objbench.configuration import R2_ENDPOINT, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY
import logging

logger = logging.getLogger(__name__)


class R2Target(ObjectStoreTarget):
    """Cloudflare R2 through its S3-compatible API."""

    scheme = "r2"
    addressing_style = "path"

    def __init__(self, uri: str, bucket_name: str, credentials: dict = None, concurrency: int = 1,
                 request_timeout: float = None):
        if not R2_ENDPOINT:
            raise BackendUnavailable("R2_ENDPOINT must be set to use r2:// URIs")
        if credentials is None:
            credentials = {
                "access_key_id": R2_ACCESS_KEY_ID,
                "secret_access_key": R2_SECRET_ACCESS_KEY,
                "region_name": "auto",
            }

        super().__init__(
            uri,
            bucket_name=bucket_name,
            endpoint=R2_ENDPOINT,
            credentials=credentials,
            concurrency=concurrency,
            request_timeout=request_timeout,
        )
        logger.info("Initialized R2 target")
