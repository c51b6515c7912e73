"""Per-method access control for hostpages.

Two rules decide whether a resolved request may proceed:

    - PUT and DELETE need a request header whose value is exactly the
      shared secret (case-sensitive, byte-for-byte).
    - GET is allowed when the *request path* (not the resolved storage
      key) is on the allow list.

Any other method is never authorized. The handler rejects such methods
with 405 before reaching this module, so ``authorize`` returning False
for them only matters to direct callers.
"""

import hmac
from collections.abc import Iterable, Mapping

from pydantic import SecretStr

from hostpages.config import AuthConfig, RoutingConfig


class AccessPolicy:
    """Immutable authorization rules built once at startup.

    Attributes:
        header: Name of the request header carrying the shared secret.
        allow_list: Request paths readable without the header.
    """

    def __init__(
        self,
        secret: SecretStr | str,
        allow_list: Iterable[str] = (),
        header: str = "X-Custom-Auth-Key",
    ) -> None:
        if not isinstance(secret, SecretStr):
            secret = SecretStr(secret)
        self._secret = secret
        self.header = header
        self.allow_list: frozenset[str] = frozenset(allow_list)

    @classmethod
    def from_config(cls, auth: AuthConfig, routing: RoutingConfig) -> "AccessPolicy":
        return cls(secret=auth.secret, allow_list=routing.allow_list, header=auth.header)

    def __repr__(self) -> str:
        return f"AccessPolicy(header={self.header!r}, allow_list={sorted(self.allow_list)!r})"

    def has_valid_header(self, headers: Mapping[str, str]) -> bool:
        """Check the auth header against the shared secret.

        An empty configured secret never matches, so an unconfigured
        deployment is read-only rather than open.
        """
        expected = self._secret.get_secret_value()
        provided = headers.get(self.header)
        if not expected or provided is None:
            return False
        return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))

    def is_allow_listed(self, path: str) -> bool:
        return path in self.allow_list

    def authorize(self, method: str, path: str, headers: Mapping[str, str]) -> bool:
        """Decide whether ``method`` on request ``path`` is permitted.

        Args:
            method: Upper-case HTTP method.
            path: The request path, before route resolution.
            headers: Request headers (case-insensitive mapping in practice).

        Returns:
            True if the request is authorized.
        """
        if method in ("PUT", "DELETE"):
            return self.has_valid_header(headers)
        if method == "GET":
            return self.is_allow_listed(path)
        return False
