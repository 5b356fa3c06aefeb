"""
Async S3-compatible object storage target.
"""

import asyncio
import logging
import os
from typing import AsyncIterator, Dict, Iterable, List, Optional, Union

import aioboto3
import psutil
from aiohttp.client_exceptions import ClientPayloadError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from objbench.common.errors import (
    BackendUnavailable,
    ObjectNotFound,
    ShortRead,
    TransientTransferError,
)
from objbench.configuration import (
    CONNECT_TIMEOUT_SECONDS,
    HTTP_NOT_FOUND_STATUS,
    HTTP_THROTTLING_STATUSES,
    MAX_POOL_CONNECTIONS,
    MULTIPART_PART_BYTES,
    MULTIPART_UPLOAD_WORKERS,
    REQUEST_TIMEOUT_SECONDS,
)
from objbench.systems.base import ObjectInfo, StorageTarget

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def _error_details(error: ClientError):
    code = error.response.get('Error', {}).get('Code', 'Unknown')
    status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode', 0)
    return code, status


class ObjectStoreTarget(StorageTarget):
    """Async target for S3-compatible stores, with a pooled aioboto3 client.

    The bucket is the URI host; keys are the URI path. Retries are disabled in
    botocore because the worker pool owns the retry policy.
    """

    scheme = "s3"
    addressing_style = "virtual"

    def __init__(self, uri: str, bucket_name: str, endpoint: Optional[str],
                 credentials: dict, concurrency: int = 1,
                 request_timeout: Optional[float] = None):
        super().__init__(uri)
        self.bucket_name = bucket_name
        self.endpoint = endpoint or None
        self.credentials = credentials
        self.concurrency = concurrency
        self.request_timeout = REQUEST_TIMEOUT_SECONDS if request_timeout is None else request_timeout

        self._config = self._create_config()

        self.session = aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id") or None,
            aws_secret_access_key=credentials.get("secret_access_key") or None,
            region_name=credentials.get("region_name", "auto"),
        )
        self.client = None

        # Connection monitoring
        self._download_count = 0

        logger.info(
            f"Initialized async storage for {self.endpoint or 'default endpoint'} "
            f"bucket {bucket_name} (max_pool_connections={self._config.max_pool_connections})"
        )

    def _create_config(self) -> Config:
        """Create a boto config sized to the requested concurrency."""
        optimal_pool_size = self.concurrency * 2 + 10
        actual_pool_size = min(optimal_pool_size, MAX_POOL_CONNECTIONS)

        if optimal_pool_size > MAX_POOL_CONNECTIONS:
            logger.warning(
                f"Requested pool size ({optimal_pool_size}) exceeds maximum "
                f"({MAX_POOL_CONNECTIONS}); requests will queue for connections"
            )

        return Config(
            max_pool_connections=actual_pool_size,
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=self.request_timeout,
            retries={
                'max_attempts': 1,
                'mode': 'standard',
            },
            s3={
                'payload_signing_enabled': False,
                'addressing_style': self.addressing_style,
            },
            tcp_keepalive=True,
        )

    async def __aenter__(self):
        try:
            self.client = await self.session.client(
                "s3",
                endpoint_url=self.endpoint,
                config=self._config,
            ).__aenter__()
        except (BotoCoreError, ValueError) as e:
            raise BackendUnavailable(f"Cannot open client for {self.uri}: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.__aexit__(exc_type, exc_val, exc_tb)
            self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use async context manager.")
        return self.client

    def get_connection_count(self) -> int:
        """Get number of established connections for this process."""
        try:
            process = psutil.Process(os.getpid())
            connections = process.net_connections(kind='inet')
            return len([c for c in connections if c.status == psutil.CONN_ESTABLISHED])
        except psutil.Error as e:
            logger.debug(f"Failed to get connection count: {e}")
            return -1

    async def read_range(self, key: str, offset: int, length: int) -> bytes:
        client = self._require_client()

        self._download_count += 1
        if self._download_count % 100 == 0:
            logger.info(
                f"Range reads: {self._download_count}, "
                f"Active connections: {self.get_connection_count()}"
            )

        range_header = f"bytes={offset}-{offset + length - 1}"
        try:
            response = await client.get_object(
                Bucket=self.bucket_name,
                Key=key,
                Range=range_header,
            )
            data = await response["Body"].read()
        except ClientError as e:
            code, status = _error_details(e)
            if status in HTTP_THROTTLING_STATUSES:
                logger.error(
                    f"THROTTLING DETECTED: {code} (HTTP {status}) for {key} {range_header}"
                )
            else:
                logger.warning(f"S3 error {code} (HTTP {status}) for {key} {range_header}")
            raise TransientTransferError(f"{code} (HTTP {status}) reading {key} {range_header}") from e
        except ClientPayloadError as e:
            logger.warning(f"Incomplete payload for {key} {range_header}: connection closed early")
            raise TransientTransferError(f"Incomplete payload for {key} {range_header}") from e
        except BotoCoreError as e:
            raise TransientTransferError(f"Error reading {key} {range_header}: {e}") from e

        if len(data) != length:
            raise ShortRead(key, offset, length, len(data))
        return data

    async def head(self, key: str) -> ObjectInfo:
        client = self._require_client()
        try:
            response = await client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            code, status = _error_details(e)
            if code in NOT_FOUND_CODES or status == HTTP_NOT_FOUND_STATUS:
                raise ObjectNotFound(key)
            raise BackendUnavailable(f"{code} (HTTP {status}) for {self.bucket_name}/{key}") from e
        except BotoCoreError as e:
            raise BackendUnavailable(f"Cannot reach {self.uri}: {e}") from e
        return ObjectInfo(key, response["ContentLength"])

    async def list(self, prefix: str) -> List[ObjectInfo]:
        client = self._require_client()
        if prefix and not prefix.endswith("/"):
            prefix += "/"

        objects = []
        try:
            paginator = client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    objects.append(ObjectInfo(obj["Key"], obj["Size"]))
        except ClientError as e:
            code, status = _error_details(e)
            raise BackendUnavailable(f"{code} (HTTP {status}) listing {self.bucket_name}/{prefix}") from e
        except BotoCoreError as e:
            raise BackendUnavailable(f"Cannot reach {self.uri}: {e}") from e
        return objects

    async def write(self, key: str, data: bytes) -> None:
        client = self._require_client()
        try:
            await client.put_object(Bucket=self.bucket_name, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            raise TransientTransferError(f"Failed to upload {key}: {e}") from e

    async def write_stream(
        self, key: str, chunks: Union[Iterable[bytes], AsyncIterator[bytes]], total_size: int,
        max_workers: int = MULTIPART_UPLOAD_WORKERS,
    ) -> None:
        """Upload an object using concurrent multipart upload.

        Objects no larger than one part are sent with a single PUT. The
        multipart upload is only completed once every part succeeded, and is
        aborted otherwise, so the object is never partially visible.

        Args:
            key: Object key
            chunks: Iterable (sync or async) yielding data chunks
            total_size: Total size of the object
            max_workers: Maximum number of concurrent part uploads
        """
        if total_size <= MULTIPART_PART_BYTES:
            await super().write_stream(key, chunks, total_size)
            return

        client = self._require_client()
        try:
            response = await client.create_multipart_upload(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise TransientTransferError(f"Failed to start multipart upload of {key}: {e}") from e
        upload_id = response["UploadId"]

        parts_queue: asyncio.Queue = asyncio.Queue(maxsize=max_workers * 2)
        parts_results: Dict[int, dict] = {}
        upload_errors: List[str] = []

        async def upload_worker():
            while True:
                part = await parts_queue.get()
                try:
                    if part is None:
                        return
                    part_number, part_bytes = part
                    if upload_errors:
                        continue
                    try:
                        result = await client.upload_part(
                            Bucket=self.bucket_name,
                            Key=key,
                            PartNumber=part_number,
                            UploadId=upload_id,
                            Body=part_bytes,
                        )
                        parts_results[part_number] = {
                            "ETag": result["ETag"],
                            "PartNumber": part_number,
                        }
                    except (ClientError, BotoCoreError) as e:
                        logger.error(f"Failed to upload part {part_number} of {key}: {e}")
                        upload_errors.append(f"part {part_number}: {e}")
                finally:
                    parts_queue.task_done()

        workers = [asyncio.create_task(upload_worker()) for _ in range(max_workers)]
        part_number = 1
        buffer = bytearray()

        async def emit(data: bytes):
            nonlocal part_number
            buffer.extend(data)
            while len(buffer) >= MULTIPART_PART_BYTES:
                await parts_queue.put((part_number, bytes(buffer[:MULTIPART_PART_BYTES])))
                del buffer[:MULTIPART_PART_BYTES]
                part_number += 1

        try:
            try:
                if hasattr(chunks, "__aiter__"):
                    async for chunk in chunks:
                        await emit(chunk)
                else:
                    for chunk in chunks:
                        await emit(chunk)

                if buffer:
                    await parts_queue.put((part_number, bytes(buffer)))

                await parts_queue.join()
            finally:
                for _ in workers:
                    await parts_queue.put(None)
                await asyncio.gather(*workers, return_exceptions=True)

            if upload_errors:
                raise TransientTransferError(f"Upload errors for {key}: {'; '.join(upload_errors)}")

            parts = [parts_results[number] for number in sorted(parts_results)]
            await client.complete_multipart_upload(
                Bucket=self.bucket_name,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except (ClientError, BotoCoreError) as e:
            await self._abort_multipart(key, upload_id)
            raise TransientTransferError(f"Failed to complete upload of {key}: {e}") from e
        except BaseException:
            await self._abort_multipart(key, upload_id)
            raise

        logger.info(f"Uploaded {key} in {len(parts)} parts")

    async def _abort_multipart(self, key: str, upload_id: str) -> None:
        try:
            await self.client.abort_multipart_upload(
                Bucket=self.bucket_name, Key=key, UploadId=upload_id
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Failed to abort multipart upload {upload_id} for {key}: {e}")
