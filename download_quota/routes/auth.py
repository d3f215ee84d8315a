"""Registration, login and user lookup endpoints."""

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_201_CREATED

from download_quota.errors import InvalidInputError
from download_quota.routes.common import (
    get_container,
    get_text_field,
    json_endpoint,
    read_json_body,
)


@json_endpoint("Registration failed", with_success=True)
async def register(request: Request) -> Response:
    body = await read_json_body(request)
    username = await get_container(request).accounts().register(
        get_text_field(body, "username"), get_text_field(body, "password")
    )
    return JSONResponse(
        {
            "success": True,
            "message": "User registered successfully",
            "username": username,
        },
        status_code=HTTP_201_CREATED,
    )


@json_endpoint("Login failed", with_success=True)
async def login(request: Request) -> Response:
    body = await read_json_body(request)
    result = await get_container(request).accounts().authenticate(
        get_text_field(body, "username"), get_text_field(body, "password")
    )
    return JSONResponse(
        {
            "success": True,
            "message": "Login successful",
            "username": result.account.username,
            "quota": result.quota.to_view() if result.quota else None,
        }
    )


@json_endpoint("Failed to check user")
async def check_user(request: Request) -> Response:
    body = await read_json_body(request)
    username = get_text_field(body, "username")
    if not username:
        raise InvalidInputError("Username is required")

    found = await get_container(request).accounts().find(username)
    if found is None:
        return JSONResponse({"exists": False})

    quota = found.quota
    return JSONResponse(
        {
            "exists": True,
            "username": username,
            "quota": quota.to_view() if quota else None,
        }
    )
