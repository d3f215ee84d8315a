"""Helpers shared by the route handlers."""

import functools
import json
import logging
from typing import Any, Awaitable, Callable, Dict

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from download_quota.di import Container
from download_quota.errors import InvalidInputError, QuotaServiceError

logger = logging.getLogger(__name__)

Endpoint = Callable[[Request], Awaitable[Response]]


def get_container(request: Request) -> Container:
    return request.app.state.container


def error_response(message: str, status_code: int, with_success: bool) -> JSONResponse:
    body: Dict[str, Any] = {"success": False} if with_success else {}
    body["error"] = message
    return JSONResponse(body, status_code=status_code)


def json_endpoint(
    failure_message: str, with_success: bool = False
) -> Callable[[Endpoint], Endpoint]:
    """
    Translate errors raised by an endpoint into JSON responses.

    `QuotaServiceError`s become their own status and message. Anything else
    is logged and answered with a 500 carrying `failure_message`.

    Args:
        failure_message: Message returned to the client on unexpected errors
        with_success: Whether error bodies carry `"success": false`
    """

    def decorator(endpoint: Endpoint) -> Endpoint:
        @functools.wraps(endpoint)
        async def wrapper(request: Request) -> Response:
            try:
                return await endpoint(request)
            except QuotaServiceError as e:
                return error_response(e.message, e.status_code, with_success)
            except Exception:
                logger.exception("%s %s failed", request.method, request.url.path)
                return error_response(
                    failure_message, HTTP_500_INTERNAL_SERVER_ERROR, with_success
                )

        return wrapper

    return decorator


async def read_json_body(request: Request) -> Dict[str, Any]:
    """
    Parse the request body as a JSON object. An empty body is an empty object.

    Raises:
        InvalidInputError: If the body is not a JSON object
    """
    raw = await request.body()
    if not raw.strip():
        return {}

    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInputError("Request body must be valid JSON") from e

    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return body


def get_text_field(body: Dict[str, Any], name: str) -> str:
    """Fetch a string field from a JSON body, treating non-strings as missing."""
    value = body.get(name)
    return value if isinstance(value, str) else ""
