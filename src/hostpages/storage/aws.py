"""S3 gateway storage backend for hostpages.

Proxies all object operations to an upstream S3-compatible bucket (AWS S3,
Cloudflare R2, MinIO, ...) via aiobotocore.

Key mapping:
    Objects:  {prefix}{key}

Credentials are resolved via the standard AWS credential chain
(env vars, ~/.aws/credentials, IAM role, etc.) unless given explicitly.
"""

import email.utils
import hashlib
import logging
from datetime import datetime, timezone

from aiobotocore.session import AioSession
from botocore.exceptions import ClientError

from hostpages.storage.backend import HttpMetadata, StoredObject

logger = logging.getLogger(__name__)

# HttpMetadata field -> S3 request/response parameter
_S3_PARAMS = {
    "content_type": "ContentType",
    "content_language": "ContentLanguage",
    "content_disposition": "ContentDisposition",
    "content_encoding": "ContentEncoding",
    "cache_control": "CacheControl",
    "expires": "Expires",
}


def _is_not_found(exc: ClientError) -> bool:
    code = exc.response.get("Error", {}).get("Code", "")
    return code in ("NoSuchKey", "404", "NotFound")


def _header_value(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return email.utils.format_datetime(value.astimezone(timezone.utc), usegmt=True)
    return str(value)


class AWSGatewayBackend:
    """Storage backend that proxies to an upstream S3 bucket.

    Attributes:
        bucket_name: The upstream bucket name.
        region: The region for the bucket ("auto" for R2).
        prefix: Key prefix for all objects in the upstream bucket.
    """

    def __init__(
        self,
        bucket_name: str,
        region: str = "auto",
        prefix: str = "",
        endpoint_url: str = "",
        use_path_style: bool = False,
        access_key_id: str = "",
        secret_access_key: str = "",
    ) -> None:
        self.bucket_name = bucket_name
        self.region = region
        self.prefix = prefix
        self.endpoint_url = endpoint_url
        self.use_path_style = use_path_style
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self._session = AioSession()
        self._client = None
        self._client_ctx = None

    def _s3_key(self, key: str) -> str:
        """Map a storage key to an upstream S3 key."""
        return f"{self.prefix}{key}"

    async def init(self) -> None:
        """Create the aiobotocore S3 client and verify the upstream bucket exists.

        Raises:
            ValueError: If the upstream bucket does not exist or is inaccessible.
        """
        client_kwargs: dict = {"region_name": self.region}
        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url
        if self.use_path_style:
            from botocore.config import Config as BotoConfig
            client_kwargs["config"] = BotoConfig(s3={"addressing_style": "path"})

        if self.access_key_id and self.secret_access_key:
            session = AioSession()
            session.set_credentials(self.access_key_id, self.secret_access_key)
            self._session = session
        self._client_ctx = self._session.create_client("s3", **client_kwargs)
        self._client = await self._client_ctx.__aenter__()

        try:
            await self._client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None
            raise ValueError(
                f"Cannot access upstream S3 bucket '{self.bucket_name}': {code}"
            ) from e

        logger.info(
            "S3 gateway backend initialized: bucket=%s region=%s prefix='%s'",
            self.bucket_name,
            self.region,
            self.prefix,
        )

    async def close(self) -> None:
        """Close the aiobotocore client session."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    async def put(
        self, key: str, data: bytes, http_metadata: HttpMetadata | None = None
    ) -> StoredObject:
        """Upload an object to the upstream bucket.

        Computes MD5 locally for a consistent ETag (upstream may differ with SSE).
        """
        http_metadata = http_metadata or HttpMetadata()
        kwargs: dict = {"Bucket": self.bucket_name, "Key": self._s3_key(key), "Body": data}
        for attr, param in _S3_PARAMS.items():
            value = getattr(http_metadata, attr)
            if value:
                kwargs[param] = value

        await self._client.put_object(**kwargs)
        return StoredObject(
            key=key,
            etag=hashlib.md5(data).hexdigest(),
            size=len(data),
            http_metadata=http_metadata,
        )

    async def get(self, key: str) -> StoredObject | None:
        """Download an object from the upstream bucket.

        Returns:
            The object, or None if the upstream reports it missing.
        """
        try:
            resp = await self._client.get_object(Bucket=self.bucket_name, Key=self._s3_key(key))
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise

        async with resp["Body"] as stream:
            data = await stream.read()

        http_metadata = HttpMetadata(
            **{attr: _header_value(resp.get(param)) for attr, param in _S3_PARAMS.items()}
        )
        return StoredObject(
            key=key,
            etag=resp.get("ETag", "").strip('"') or hashlib.md5(data).hexdigest(),
            size=len(data),
            body=data,
            http_metadata=http_metadata,
            uploaded=resp.get("LastModified") or datetime.now(timezone.utc),
        )

    async def delete(self, key: str) -> None:
        """Delete an object from the upstream bucket.

        Idempotent: S3 delete_object does not error on missing keys.
        """
        await self._client.delete_object(Bucket=self.bucket_name, Key=self._s3_key(key))
