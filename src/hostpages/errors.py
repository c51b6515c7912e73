"""Router error definitions for hostpages."""


class RouterError(Exception):
    """An error that maps directly onto an HTTP response.

    Attributes:
        code: Short machine-readable error code (e.g. "NotFound", "Forbidden").
        message: Plain-text body returned to the client.
        http_status: The HTTP status code to return.
        headers: Extra response headers (e.g. ``Allow`` for 405).
    """

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int = 400,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the router error.

        Args:
            code: Error code.
            message: Response body text.
            http_status: HTTP status code (default 400).
            headers: Optional extra response headers.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.headers = headers or {}


# -- Pre-defined errors -------------------------------------------------------


class NotFound(RouterError):
    """The hostname or path is not present in the route table."""

    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(code="NotFound", message=message, http_status=404)


class Forbidden(RouterError):
    """The request failed the authorization check for its method."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(code="Forbidden", message=message, http_status=403)


class ObjectNotFound(RouterError):
    """The route resolved but the storage backend has no object at the key."""

    def __init__(self, key: str = "") -> None:
        super().__init__(code="ObjectNotFound", message="Object Not Found", http_status=404)
        self.key = key


class MethodNotAllowed(RouterError):
    """The method is not one of the methods the router dispatches."""

    def __init__(self, allowed: tuple[str, ...] = ("PUT", "GET", "DELETE")) -> None:
        super().__init__(
            code="MethodNotAllowed",
            message="Method Not Allowed",
            http_status=405,
            headers={"Allow": ", ".join(allowed)},
        )


class InternalError(RouterError):
    """An unexpected failure, typically raised from the storage backend."""

    def __init__(self, message: str = "Internal Server Error") -> None:
        super().__init__(code="InternalError", message=message, http_status=500)
