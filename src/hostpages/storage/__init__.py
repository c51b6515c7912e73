"""Object storage backends for hostpages."""

from typing import TYPE_CHECKING

from hostpages.storage.backend import HttpMetadata, StorageBackend, StoredObject

if TYPE_CHECKING:
    from hostpages.config import StorageConfig

__all__ = [
    "create_storage_backend",
    "HttpMetadata",
    "StorageBackend",
    "StoredObject",
]


def create_storage_backend(config: "StorageConfig") -> StorageBackend:
    """Create a storage backend instance based on configuration.

    Args:
        config: The storage configuration.

    Returns:
        A storage backend instance implementing the StorageBackend protocol.

    Raises:
        ValueError: If the backend is unknown or required config is missing.
    """
    backend = config.backend

    if backend == "local":
        from hostpages.storage.local import LocalStorageBackend

        return LocalStorageBackend(config.local_root)

    elif backend == "memory":
        from hostpages.storage.memory import MemoryStorageBackend

        return MemoryStorageBackend()

    elif backend == "aws":
        if not config.aws_bucket:
            raise ValueError("storage.aws.bucket is required when backend is 'aws'")
        try:
            from hostpages.storage.aws import AWSGatewayBackend
        except ImportError as exc:
            raise ImportError(
                "aiobotocore is required for the AWS backend. "
                "Install with: pip install hostpages[aws]"
            ) from exc
        return AWSGatewayBackend(
            bucket_name=config.aws_bucket,
            region=config.aws_region,
            prefix=config.aws_prefix,
            endpoint_url=config.aws_endpoint_url,
            use_path_style=config.aws_use_path_style,
            access_key_id=config.aws_access_key_id,
            secret_access_key=config.aws_secret_access_key,
        )

    else:
        raise ValueError(f"Unknown storage backend: {backend}")
