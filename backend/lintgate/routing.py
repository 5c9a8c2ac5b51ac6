"""
Lintgate Backend: Route Class
==============================

What:  An APIRoute that turns unexpected handler failures into the generic
       500 envelope.
How:   Wraps the handler FastAPI builds for each route. Domain errors
       (LintgateError), HTTP exceptions and request validation errors are
       re-raised for the registered exception handlers; anything else is
       logged with its traceback and answered with `server_error`.
Who:   Every router in `lintgate.routes` is created with
       `route_class=GuardedRoute`.

Because the 500 is produced inside the route, it travels back out through
the security stage and carries the same headers as any other response.
"""

import logging
from typing import Callable

from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import Response

from lintgate.exceptions import LintgateError
from lintgate.responses import error_response

logger = logging.getLogger(__name__)


class GuardedRoute(APIRoute):
    def get_route_handler(self) -> Callable:
        handler = super().get_route_handler()

        async def guarded_handler(request: Request) -> Response:
            try:
                return await handler(request)
            except (LintgateError, StarletteHTTPException, RequestValidationError):
                raise
            except Exception as e:
                logger.error(
                    "Unhandled error in %s %s: %s",
                    request.method,
                    request.url.path,
                    str(e),
                    exc_info=True,
                )
                return error_response(
                    500,
                    "server_error",
                    "An unexpected error occurred. Please try again or contact support.",
                )

        return guarded_handler
