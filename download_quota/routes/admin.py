"""Administration endpoints."""

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from download_quota.routes.common import get_container, json_endpoint


@json_endpoint("Failed to fetch users")
async def list_users(request: Request) -> Response:
    users = await get_container(request).accounts().list_all()
    return JSONResponse(
        [
            {
                **item.account.to_public_dict(),
                "quota": item.quota.to_view() if item.quota else None,
            }
            for item in users
        ]
    )


@json_endpoint("Failed to delete user", with_success=True)
async def delete_user(request: Request) -> Response:
    await get_container(request).accounts().delete(request.path_params["username"])
    return JSONResponse({"success": True, "message": "User deleted"})
