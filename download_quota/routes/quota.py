"""Quota endpoints."""

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from download_quota.routes.common import get_container, json_endpoint, read_json_body


@json_endpoint("Failed to fetch quota")
async def get_quota(request: Request) -> Response:
    ledger = get_container(request).ledger()
    quota = await ledger.get_quota(request.path_params["user"])
    return JSONResponse(quota.to_view())


@json_endpoint("Failed to increment quota")
async def increment(request: Request) -> Response:
    ledger = get_container(request).ledger()
    result = await ledger.increment(request.path_params["user"])
    return JSONResponse(
        {
            "allowed": result.allowed,
            "message": "Download counted" if result.allowed else "Download limit reached",
            **result.quota.to_view(),
        }
    )


@json_endpoint("Failed to reset quota", with_success=True)
async def reset(request: Request) -> Response:
    ledger = get_container(request).ledger()
    quota = await ledger.reset(request.path_params["user"])
    return JSONResponse({"success": True, "message": "Quota reset", **quota.to_view()})


@json_endpoint("Failed to update limit", with_success=True)
async def set_limit(request: Request) -> Response:
    ledger = get_container(request).ledger()
    body = await read_json_body(request)
    quota = await ledger.set_limit(
        request.path_params["user"], body.get("maxDownloads")
    )
    return JSONResponse({"success": True, "message": "Limit updated", **quota.to_view()})
