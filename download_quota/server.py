import contextlib
import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from download_quota import __version__
from download_quota.di import Container
from download_quota.routes import admin, auth, quota

logger = logging.getLogger(__name__)


async def health(_request: Request) -> JSONResponse:
    """Health check endpoint.
    Args:
        _request: The incoming request (unused).
    Returns:
        A JSON response with status "ok".
    """
    return JSONResponse({"status": "ok"})


async def index(_request: Request) -> JSONResponse:
    """Service banner listing the available endpoints."""
    return JSONResponse(
        {
            "message": "Download Quota API is running",
            "version": __version__,
            "endpoints": [
                "GET /api/quota/:user",
                "POST /api/quota/increment/:user",
                "POST /api/quota/reset/:user",
                "POST /api/quota/set-limit/:user",
                "POST /api/auth/register",
                "POST /api/auth/login",
                "POST /api/auth/check-user",
                "GET /api/admin/users",
                "DELETE /api/admin/users/:username",
            ],
        }
    )


@contextlib.asynccontextmanager
async def lifespan(app: Starlette):  # type: ignore
    """Initialize the application and its components."""

    uvicorn_logger = logging.getLogger("uvicorn")
    root_logger = logging.getLogger()
    for handler in uvicorn_logger.handlers:
        root_logger.addHandler(handler)

    load_dotenv()
    app.state.container = Container()
    app.state.container.config.from_yaml(Path(__file__).parent / "config.yml")
    # Credentials bypass YAML typing so values like "yes" or "0123" stay strings.
    app.state.container.config.auth.admin_username.from_env("ADMIN_USERNAME", default="admin")
    app.state.container.config.auth.admin_password.from_env("ADMIN_PASSWORD", default="")

    log_level = str(app.state.container.config.log_level()).upper()
    root_logger.setLevel(log_level)
    logger.info(
        "Starting Download Quota server %s with log level %s...", __version__, log_level
    )

    store = app.state.container.store()
    await store.connect()
    logger.info("Configured store: %s", store)
    logger.info("Configured ledger: %s", app.state.container.ledger())

    admin_password = app.state.container.config.admin_password()
    if admin_password:
        accounts = app.state.container.accounts()
        if await accounts.ensure_admin(admin_password):
            logger.info("Created admin account '%s'", accounts.admin_username)

    yield

    logger.info("Shutting down Download Quota server...")
    await store.close()


routes: List[Route] = [
    Route("/", endpoint=index),
    Route("/health", endpoint=health),
    Route("/api/quota/{user:str}", endpoint=quota.get_quota, methods=["GET"]),
    Route(
        "/api/quota/increment/{user:str}", endpoint=quota.increment, methods=["POST"]
    ),
    Route("/api/quota/reset/{user:str}", endpoint=quota.reset, methods=["POST"]),
    Route(
        "/api/quota/set-limit/{user:str}", endpoint=quota.set_limit, methods=["POST"]
    ),
    Route("/api/auth/register", endpoint=auth.register, methods=["POST"]),
    Route("/api/auth/login", endpoint=auth.login, methods=["POST"]),
    Route("/api/auth/check-user", endpoint=auth.check_user, methods=["POST"]),
    Route("/api/admin/users", endpoint=admin.list_users, methods=["GET"]),
    Route(
        "/api/admin/users/{username:str}", endpoint=admin.delete_user, methods=["DELETE"]
    ),
]

app: Starlette = Starlette(routes=routes, lifespan=lifespan)

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 5000))
    uvicorn.run(app, host="0.0.0.0", port=port, access_log=False)
