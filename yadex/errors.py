"""Mapping of request failures to HTTP responses.

Client-visible bodies are fixed strings; paths, OS messages and template
internals only ever reach the server log.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from aiohttp import web

from .template_store import RenderError

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class YadexError(Exception):
    """Base class for failures that end a single request."""

    status = 500
    body = "Internal Server Error"

    def to_response(self) -> web.Response:
        return web.Response(text=self.body, status=self.status, content_type="text/plain")


class NotFound(YadexError):
    """The requested directory cannot be opened."""

    status = 404
    body = "404 Not Found"


class RenderFailure(YadexError):
    def __init__(self, error: RenderError):
        super().__init__(str(error))
        self.error = error

    def to_response(self) -> web.Response:
        logger.error("Render error: %s", self.error, exc_info=self.error)
        return super().to_response()


class InternalError(YadexError):
    def __init__(self, message: str, source: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.source = source

    def to_response(self) -> web.Response:
        logger.error("Internal error: %s, source: %r", self.message, self.source, exc_info=self.source)
        return super().to_response()


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except NotFound as exc:
        logger.debug("Not found: %s (%s)", request.path, exc.__cause__)
        return exc.to_response()
    except YadexError as exc:
        return exc.to_response()
    except web.HTTPException:
        raise
    except Exception as exc:
        return InternalError(f"unhandled exception serving {request.path}", exc).to_response()
