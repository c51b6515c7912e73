"""Hostname and path to storage key resolution."""

from collections.abc import Mapping
from types import MappingProxyType

from hostpages.config import RoutingConfig


class RouteTable:
    """Read-only mapping of (hostname, request path) to a storage key.

    Hostnames are case-insensitive and stored lowercased. Paths are
    matched exactly: no prefix matching, no trailing-slash folding and no
    case folding.
    """

    def __init__(self, hosts: Mapping[str, Mapping[str, str]]) -> None:
        self._hosts = MappingProxyType(
            {host.lower(): MappingProxyType(dict(paths)) for host, paths in hosts.items()}
        )

    @classmethod
    def from_config(cls, routing: RoutingConfig) -> "RouteTable":
        return cls(routing.hosts)

    def resolve(self, hostname: str | None, path: str) -> str | None:
        """Return the storage key for ``hostname`` + ``path``, or None if unmapped."""
        if hostname is None:
            return None
        paths = self._hosts.get(hostname.lower())
        if paths is None:
            return None
        return paths.get(path)

    @property
    def hostnames(self) -> list[str]:
        return sorted(self._hosts)

    def __len__(self) -> int:
        return sum(len(paths) for paths in self._hosts.values())
