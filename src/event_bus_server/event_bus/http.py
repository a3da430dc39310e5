"""HTTP routing layer of the event bus.

Connectors that react to HTTP requests register themselves as *delegates* for
a path pattern. All delegates registered under the same pattern share one
``HttpMultiplexer`` and compete for every request: the first delegate that
reports ``RouteResult.HANDLED`` wins and the rest are not consulted.

Multiplexers are installed on a ``DelegateRouter``, a small ordered route
chain in which each route may hand the request on to the next matching route.
The router is mounted on a FastAPI / Starlette application as a single
catch-all route.

Path patterns use ``:name`` for one captured segment and ``*`` for the
remaining path, e.g. ``/orders/:id`` or ``/events/webhooks/*``.
"""

import re
from collections.abc import Awaitable, Callable, Iterable
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl

from loguru import logger
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import compile_path

from event_bus_server.constants import PATH_PARAMETER_MARKER, PATH_WILDCARD

if TYPE_CHECKING:
    from event_bus_server.connectors.base import BaseHttpConnector

CallNext = Callable[[], Awaitable[Response]]
RouteEndpoint = Callable[["HttpContext", CallNext], Awaitable[Response]]

_PARAMETER_PATTERN = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


class RouteResult(StrEnum):
    """Outcome reported by an HTTP delegate for one request."""

    HANDLED = "handled"
    DEFERRED = "deferred"


class HttpContext:
    """Per-request state shared by the router, multiplexers and delegates.

    Wraps the Starlette ``Request`` and collects the response a delegate
    writes. ``original_path`` is the un-parameterized pattern of the
    multiplexer currently handling the request.
    """

    def __init__(self, request: Request) -> None:
        self.request = request
        self.original_path: str | None = None
        self.path_params: dict[str, Any] = {}
        self.response: Response | None = None
        self._body: Any = None
        self._body_loaded = False

    @property
    def method(self) -> str:
        return self.request.method.upper()

    @property
    def responded(self) -> bool:
        return self.response is not None

    async def body(self) -> Any:
        """Return the parsed request body.

        JSON bodies are decoded to Python objects, url-encoded forms to a
        dict. Any other content is returned as raw bytes. The body is read
        once and cached.
        """
        if not self._body_loaded:
            raw = await self.request.body()
            content_type = self.request.headers.get("content-type", "").split(";")[0].strip().lower()
            if not raw:
                self._body = None
            elif content_type == "application/json" or content_type.endswith("+json"):
                self._body = await self.request.json()
            elif content_type == "application/x-www-form-urlencoded":
                self._body = dict(parse_qsl(raw.decode("latin-1"), keep_blank_values=True))
            else:
                self._body = raw
            self._body_loaded = True
        return self._body

    def set_response(self, response: Response) -> Response:
        self.response = response
        return response

    def send(self, content: str | bytes = "", status_code: int = 200, media_type: str | None = None) -> Response:
        """Write a plain (or custom media type) response."""
        if media_type is None:
            return self.set_response(PlainTextResponse(content, status_code=status_code))
        return self.set_response(Response(content, status_code=status_code, media_type=media_type))

    def send_json(self, content: Any, status_code: int = 200) -> Response:
        """Write a JSON response."""
        return self.set_response(JSONResponse(content, status_code=status_code))

    def finalize(self) -> Response:
        """Return the written response, or an empty 200 when nothing was written."""
        return self.response if self.response is not None else Response(status_code=200)


class HttpMultiplexer:
    """Chain of competing HTTP delegates registered under one path pattern.

    The multiplexer keeps its identity for the lifetime of the bus: clearing
    its delegates turns it into a no-op route, it is never removed.
    """

    def __init__(self, original_path: str) -> None:
        self.original_path = original_path
        self.delegates: list["BaseHttpConnector"] = []

    def add_delegate(self, delegate: "BaseHttpConnector") -> None:
        self.delegates.append(delegate)

    def remove_delegate(self, delegate: "BaseHttpConnector") -> bool:
        """Remove ``delegate``, leaving the other delegates in order."""
        remaining = [d for d in self.delegates if d is not delegate]
        removed = len(remaining) != len(self.delegates)
        self.delegates = remaining
        return removed

    def clear(self) -> None:
        self.delegates = []

    async def handle(self, context: HttpContext, call_next: CallNext) -> Response:
        """Offer the request to each delegate until one claims it.

        Args:
            context: The request context; its ``original_path`` is set to this
                multiplexer's pattern before any delegate runs.
            call_next: Continues with the next matching route when no
                delegate claims the request.

        Returns:
            The response written by the winning delegate, or the response of
            the rest of the route chain.
        """
        context.original_path = self.original_path

        for delegate in self.delegates:
            result = await delegate.handle(context)
            if result is RouteResult.HANDLED:
                logger.trace(f"{context.method} {self.original_path} handled by {delegate.id}")
                return context.finalize()

        return await call_next()

    def __repr__(self) -> str:
        return f"HttpMultiplexer(original_path={self.original_path!r}, delegates={len(self.delegates)})"


class CompiledRoute:
    """A path pattern compiled to a regular expression."""

    def __init__(self, path: str, endpoint: RouteEndpoint) -> None:
        self.path = path
        self.endpoint = endpoint
        self.regex, _, self.convertors = compile_path(to_starlette_path(path))

    def match(self, request_path: str) -> dict[str, Any] | None:
        """Match ``request_path``, ignoring one trailing slash."""
        match = self.regex.match(request_path)
        if match is None and len(request_path) > 1 and request_path.endswith("/"):
            match = self.regex.match(request_path[:-1])
        if match is None:
            return None
        return {key: self.convertors[key].convert(value) for key, value in match.groupdict().items()}


class DelegateRouter:
    """Ordered route chain, tried in installation order.

    Each matching route receives a ``call_next`` that continues the search
    with the routes installed after it. A request that no route answers gets
    a 404.
    """

    def __init__(self) -> None:
        self.routes: list[CompiledRoute] = []

    def all(self, path: str, endpoint: RouteEndpoint) -> None:
        """Install ``endpoint`` for every HTTP method on ``path``."""
        self.routes.append(CompiledRoute(path, endpoint))
        logger.debug(f"Installed route {path}")

    def clear(self) -> None:
        self.routes = []

    @property
    def paths(self) -> list[str]:
        return [route.path for route in self.routes]

    async def dispatch(self, request: Request) -> Response:
        context = HttpContext(request)
        request_path = request.url.path
        position = 0

        async def call_next() -> Response:
            nonlocal position
            while position < len(self.routes):
                route = self.routes[position]
                position += 1
                params = route.match(request_path)
                if params is not None:
                    context.path_params = params
                    return await route.endpoint(context, call_next)
            return PlainTextResponse("Not Found", status_code=404)

        return await call_next()


def is_parameterized(path: str) -> bool:
    return PATH_PARAMETER_MARKER in path


def order_http_paths(paths: Iterable[str]) -> list[str]:
    """Return path patterns in route installation order.

    Literal paths come first, then parameterized paths (those containing
    ``:``). Each group is sorted in reverse string order, so ``/foo/:id`` is
    tried before ``/:bar``.

    Example:
        >>> order_http_paths(["/a", "/:id", "/b/:x", "/z"])
        ['/z', '/a', '/b/:x', '/:id']
    """
    paths = list(paths)
    literal = sorted((p for p in paths if not is_parameterized(p)), reverse=True)
    parameterized = sorted((p for p in paths if is_parameterized(p)), reverse=True)
    return literal + parameterized


def to_starlette_path(path: str) -> str:
    """Translate ``/orders/:id/*`` into Starlette's ``/orders/{id}/{wildcard:path}``."""
    converted = _PARAMETER_PATTERN.sub(r"{\1}", path)
    if converted.endswith(PATH_WILDCARD):
        converted = converted[: -len(PATH_WILDCARD)] + "{wildcard:path}"
    return converted
