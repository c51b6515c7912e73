"""Unit tests for the S3 gateway storage backend.

All tests use mocked aiobotocore: no real credentials or network access
required. The mock S3 client is injected directly onto backend._client
to bypass session creation.
"""

import hashlib
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from botocore.exceptions import ClientError

from hostpages.storage.aws import AWSGatewayBackend
from hostpages.storage.backend import HttpMetadata


def _client_error(code: str, message: str = "error") -> ClientError:
    """Create a botocore ClientError with the given error code."""
    return ClientError(
        {"Error": {"Code": code, "Message": message}},
        "TestOperation",
    )


def _make_backend(bucket="pages", prefix=""):
    """Create an AWSGatewayBackend with a mock client (skip init)."""
    backend = AWSGatewayBackend(bucket_name=bucket, prefix=prefix)
    backend._client = AsyncMock()
    backend._client_ctx = AsyncMock()
    return backend


def _body(data: bytes) -> AsyncMock:
    mock_body = AsyncMock()
    mock_body.read = AsyncMock(return_value=data)
    mock_body.__aenter__ = AsyncMock(return_value=mock_body)
    mock_body.__aexit__ = AsyncMock(return_value=False)
    return mock_body


class TestKeyMapping:
    def test_no_prefix(self):
        assert _make_backend()._s3_key("example2/security.txt") == "example2/security.txt"

    def test_with_prefix(self):
        assert _make_backend(prefix="sites/")._s3_key("a.html") == "sites/a.html"


class TestInit:
    """Tests for init() and close()."""

    async def test_init_verifies_bucket(self):
        with patch("hostpages.storage.aws.AioSession") as mock_session_cls:
            mock_client = AsyncMock()
            mock_ctx = AsyncMock()
            mock_ctx.__aenter__ = AsyncMock(return_value=mock_client)
            mock_ctx.__aexit__ = AsyncMock(return_value=False)
            mock_session_cls.return_value.create_client.return_value = mock_ctx

            backend = AWSGatewayBackend(
                bucket_name="pages", endpoint_url="https://acct.r2.cloudflarestorage.com"
            )
            await backend.init()

            mock_client.head_bucket.assert_awaited_once_with(Bucket="pages")
            _, kwargs = mock_session_cls.return_value.create_client.call_args
            assert kwargs["endpoint_url"] == "https://acct.r2.cloudflarestorage.com"
            assert kwargs["region_name"] == "auto"
            await backend.close()

    async def test_init_raises_on_missing_bucket(self):
        with patch("hostpages.storage.aws.AioSession") as mock_session_cls:
            mock_client = AsyncMock()
            mock_client.head_bucket = AsyncMock(side_effect=_client_error("404", "Not Found"))
            mock_ctx = AsyncMock()
            mock_ctx.__aenter__ = AsyncMock(return_value=mock_client)
            mock_ctx.__aexit__ = AsyncMock(return_value=False)
            mock_session_cls.return_value.create_client.return_value = mock_ctx

            backend = AWSGatewayBackend(bucket_name="no-such-bucket")
            with pytest.raises(ValueError, match="Cannot access upstream S3 bucket"):
                await backend.init()
            assert backend._client is None

    async def test_close_exits_context(self):
        backend = _make_backend()
        ctx_ref = backend._client_ctx
        await backend.close()
        ctx_ref.__aexit__.assert_awaited_once()
        assert backend._client is None

    async def test_close_noop_when_not_initialized(self):
        backend = AWSGatewayBackend(bucket_name="b")
        await backend.close()


class TestPut:
    async def test_put_returns_md5(self):
        backend = _make_backend()
        result = await backend.put("key.txt", b"hello world")
        assert result.etag == hashlib.md5(b"hello world").hexdigest()
        assert result.size == 11
        backend._client.put_object.assert_awaited_once_with(
            Bucket="pages", Key="key.txt", Body=b"hello world"
        )

    async def test_put_passes_http_metadata(self):
        backend = _make_backend(prefix="sites/")
        await backend.put(
            "a.html", b"<p/>", HttpMetadata(content_type="text/html", cache_control="no-cache")
        )
        backend._client.put_object.assert_awaited_once_with(
            Bucket="pages",
            Key="sites/a.html",
            Body=b"<p/>",
            ContentType="text/html",
            CacheControl="no-cache",
        )


class TestGet:
    async def test_get_returns_object(self):
        backend = _make_backend()
        modified = datetime(2024, 10, 11, tzinfo=timezone.utc)
        backend._client.get_object = AsyncMock(
            return_value={
                "Body": _body(b"content"),
                "ETag": '"abc123"',
                "ContentType": "text/plain",
                "LastModified": modified,
            }
        )

        obj = await backend.get("key.txt")

        assert obj.body == b"content"
        assert obj.etag == "abc123"
        assert obj.http_etag == '"abc123"'
        assert obj.http_metadata.content_type == "text/plain"
        assert obj.http_metadata.cache_control is None
        assert obj.uploaded == modified

    async def test_get_formats_expires_as_http_date(self):
        backend = _make_backend()
        backend._client.get_object = AsyncMock(
            return_value={
                "Body": _body(b"x"),
                "ETag": '"e"',
                "Expires": datetime(2030, 1, 1, tzinfo=timezone.utc),
            }
        )
        obj = await backend.get("k")
        assert obj.http_metadata.expires == "Tue, 01 Jan 2030 00:00:00 GMT"

    @pytest.mark.parametrize("code", ["NoSuchKey", "404"])
    async def test_get_missing_returns_none(self, code):
        backend = _make_backend()
        backend._client.get_object = AsyncMock(side_effect=_client_error(code))
        assert await backend.get("k") is None

    async def test_get_other_error_propagates(self):
        backend = _make_backend()
        backend._client.get_object = AsyncMock(side_effect=_client_error("AccessDenied"))
        with pytest.raises(ClientError):
            await backend.get("k")


class TestDelete:
    async def test_delete_calls_delete_object(self):
        backend = _make_backend(prefix="p/")
        await backend.delete("k")
        backend._client.delete_object.assert_awaited_once_with(Bucket="pages", Key="p/k")
