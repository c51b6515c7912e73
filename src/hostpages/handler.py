"""Request handler: resolve, authorize, dispatch to storage.

Implements the whole request decision for hostpages:
    - Route resolution on (hostname, path)   -> 404 Not Found
    - Method guard                           -> 405 Method Not Allowed
    - Authorization (secret header / allow list) -> 403 Forbidden
    - PUT    -> 201, object written under the resolved key
    - GET    -> 200 with body, metadata headers and ETag, or 404 Object Not Found
    - DELETE -> 204, idempotent
"""

import logging

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse

from hostpages.auth import AccessPolicy
from hostpages.errors import Forbidden, InternalError, MethodNotAllowed, NotFound, ObjectNotFound
from hostpages.routing import RouteTable
from hostpages.storage.backend import HttpMetadata, StorageBackend

logger = logging.getLogger(__name__)

# Methods that reach dispatch, in the order advertised by the Allow header
DISPATCH_METHODS = ("PUT", "GET", "DELETE")


class RequestHandler:
    """Maps one HTTP request onto one storage operation.

    Stateless apart from the immutable route table and access policy, so a
    single instance serves every concurrent request.

    Attributes:
        routes: The hostname/path route table.
        policy: The access policy (secret header and allow list).
        storage: The storage backend objects are read from and written to.
    """

    def __init__(self, routes: RouteTable, policy: AccessPolicy, storage: StorageBackend) -> None:
        self.routes = routes
        self.policy = policy
        self.storage = storage

    async def handle(self, request: Request) -> Response:
        """Handle a single request.

        Resolution happens before anything else, so an unmapped route is
        404 for every method and never reveals its auth requirements.

        Args:
            request: The incoming HTTP request.

        Returns:
            The response for a successful operation.

        Raises:
            RouterError: NotFound, MethodNotAllowed, Forbidden,
                ObjectNotFound or InternalError.
        """
        method = request.method.upper()
        path = request.url.path

        key = self.routes.resolve(request.url.hostname, path)
        if key is None:
            raise NotFound()
        request.state.storage_key = key

        if method not in DISPATCH_METHODS:
            raise MethodNotAllowed(DISPATCH_METHODS)

        if not self.policy.authorize(method, path, request.headers):
            raise Forbidden()

        if method == "PUT":
            return await self.put_object(request, key)
        if method == "GET":
            return await self.get_object(key)
        return await self.delete_object(key)

    async def put_object(self, request: Request, key: str) -> Response:
        """Write the request body under ``key``, overwriting any existing object.

        Content headers on the request (Content-Type, Cache-Control, ...)
        are stored with the object and replayed on GET.
        """
        data = await request.body()
        http_metadata = HttpMetadata.from_headers(request.headers)
        try:
            await self.storage.put(key, data, http_metadata)
        except Exception as exc:
            logger.exception("Storage put failed for key %s", key)
            raise InternalError() from exc
        return PlainTextResponse(f"Put {key} successfully!", status_code=201)

    async def get_object(self, key: str) -> Response:
        try:
            obj = await self.storage.get(key)
        except Exception as exc:
            logger.exception("Storage get failed for key %s", key)
            raise InternalError() from exc

        if obj is None:
            raise ObjectNotFound(key)

        headers: dict[str, str] = {}
        obj.write_http_metadata(headers)
        headers["etag"] = obj.http_etag
        return Response(content=obj.body, status_code=200, headers=headers)

    async def delete_object(self, key: str) -> Response:
        """Delete ``key``. No existence check: missing objects still get 204."""
        try:
            await self.storage.delete(key)
        except Exception as exc:
            logger.exception("Storage delete failed for key %s", key)
            raise InternalError() from exc
        return Response(status_code=204)
