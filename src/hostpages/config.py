"""Configuration loading and Pydantic models for hostpages."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from hostpages.validation import validate_route_path, validate_storage_key

DEFAULT_AUTH_HEADER = "X-Custom-Auth-Key"
DEFAULT_SECRET_ENV = "STATIC_PAGE_HANDLER_AUTH_KEY_SECRET"


class ServerConfig(BaseModel):
    """Server binding and runtime configuration."""

    host: str = "0.0.0.0"
    port: int = 8787
    log_level: str = "INFO"
    log_format: str = "text"
    shutdown_timeout: int = 30


class AuthConfig(BaseModel):
    """Shared-secret authorization for PUT and DELETE."""

    model_config = ConfigDict(frozen=True)

    header: str = DEFAULT_AUTH_HEADER
    secret_env: str = DEFAULT_SECRET_ENV
    secret: SecretStr = SecretStr("")


class RoutingConfig(BaseModel):
    """Static route table and allow list.

    ``hosts`` maps hostname -> request path -> storage key. ``allow_list``
    holds the request paths that may be read without the auth header.
    """

    model_config = ConfigDict(frozen=True)

    hosts: dict[str, dict[str, str]] = Field(default_factory=dict)
    allow_list: list[str] = Field(default_factory=list)

    @field_validator("hosts")
    @classmethod
    def _check_hosts(cls, hosts: dict[str, dict[str, str]]) -> dict[str, dict[str, str]]:
        # Request hostnames arrive lowercased from URL parsing.
        normalized: dict[str, dict[str, str]] = {}
        for host, paths in hosts.items():
            name = host.lower()
            if name in normalized:
                raise ValueError(f"Hostname listed more than once: {host!r}")
            for path, key in paths.items():
                validate_route_path(path)
                validate_storage_key(key)
            normalized[name] = paths
        return normalized

    @field_validator("allow_list")
    @classmethod
    def _check_allow_list(cls, allow_list: list[str]) -> list[str]:
        for path in allow_list:
            validate_route_path(path)
        return allow_list


class StorageConfig(BaseModel):
    """Object storage backend configuration."""

    backend: str = "local"
    local_root: str = "./data/objects"
    aws_bucket: str = ""
    aws_region: str = "auto"
    aws_prefix: str = ""
    aws_endpoint_url: str = ""
    aws_use_path_style: bool = False
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""


class HostPagesConfig(BaseModel):
    """Top-level hostpages configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


def _parse_server(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the server section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {
        "host": data.get("host", "0.0.0.0"),
        "port": data.get("port", 8787),
        "log_level": data.get("log_level", "INFO"),
        "log_format": data.get("log_format", "text"),
        "shutdown_timeout": data.get("shutdown_timeout", 30),
    }


def _parse_auth(data: dict[str, Any] | None, environ: Mapping[str, str]) -> dict[str, Any]:
    """Parse the auth section from YAML data.

    The secret is taken from the environment variable named by
    ``secret_env`` when that variable is set, else from ``secret``.
    """
    data = data or {}
    secret_env = data.get("secret_env", DEFAULT_SECRET_ENV)
    secret = environ.get(secret_env)
    if secret is None:
        secret = data.get("secret") or ""
    return {
        "header": data.get("header", DEFAULT_AUTH_HEADER),
        "secret_env": secret_env,
        "secret": SecretStr(str(secret)),
    }


def _parse_routing(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the routing section from YAML data."""
    if data is None:
        return {}
    return {
        "hosts": data.get("hosts") or {},
        "allow_list": data.get("allow_list") or [],
    }


def _parse_storage(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the storage section from YAML data.

    Handles nested structure: storage.local.root_dir -> local_root, etc.
    """
    if data is None:
        return {}

    result: dict[str, Any] = {"backend": data.get("backend", "local")}

    local_section = data.get("local")
    if isinstance(local_section, dict):
        result["local_root"] = local_section.get("root_dir", "./data/objects")

    aws_section = data.get("aws")
    if isinstance(aws_section, dict):
        result["aws_bucket"] = aws_section.get("bucket", "")
        result["aws_region"] = aws_section.get("region", "auto")
        result["aws_prefix"] = aws_section.get("prefix", "")
        result["aws_endpoint_url"] = aws_section.get("endpoint_url", "")
        result["aws_use_path_style"] = aws_section.get("use_path_style", False)
        result["aws_access_key_id"] = aws_section.get("access_key_id", "")
        result["aws_secret_access_key"] = aws_section.get("secret_access_key", "")

    return result


def load_config(path: Path, environ: Mapping[str, str] | None = None) -> HostPagesConfig:
    """Load a HostPagesConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.
        environ: Environment used to resolve the auth secret. Defaults to
            ``os.environ``.

    Returns:
        A fully populated HostPagesConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a route path or storage key is invalid.
    """
    if environ is None:
        environ = os.environ

    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return HostPagesConfig(
        server=ServerConfig(**_parse_server(raw.get("server"))),
        auth=AuthConfig(**_parse_auth(raw.get("auth"), environ)),
        routing=RoutingConfig(**_parse_routing(raw.get("routing"))),
        storage=StorageConfig(**_parse_storage(raw.get("storage"))),
    )
