"""ASGI middleware writing Fastly headers onto responses."""

from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from fastlypurge.core.services.surrogate_keys import (
    SURROGATE_CONTROL_HEADER,
    SURROGATE_KEY_HEADER,
    SurrogateKeyGenerator,
)

CACHEABLE_METHODS = frozenset({"GET", "HEAD", "POST"})


class SurrogateHeadersMiddleware(BaseHTTPMiddleware):
    """Adds Surrogate-Key and Surrogate-Control headers to responses.

    The key header uses ``request.state.surrogate_key_header`` when a
    GraphQL handler already computed it, otherwise the tags listed in
    ``request.state.cache_tags`` (site key only if there are none).
    Surrogate-Control is derived from the response's Cache-Control.

    Example::

        app.add_middleware(SurrogateHeadersMiddleware, generator=generator)
    """

    def __init__(self, app: ASGIApp, generator: SurrogateKeyGenerator) -> None:
        super().__init__(app)
        self._generator = generator

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)

        if request.method not in CACHEABLE_METHODS:
            return response

        if SURROGATE_KEY_HEADER not in response.headers:
            header = getattr(request.state, "surrogate_key_header", None)
            if header is None:
                tags = getattr(request.state, "cache_tags", None) or []
                header = await self._generator.surrogate_key_header(tags)
            response.headers[SURROGATE_KEY_HEADER] = header

        surrogate_control = self._generator.surrogate_control_header(
            response.headers.get("Cache-Control")
        )
        if surrogate_control:
            response.headers[SURROGATE_CONTROL_HEADER] = surrogate_control

        return response
