from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from codecollab.app import App
from codecollab.config import Config
from codecollab.errors import UpstreamError, UserError
from codecollab.web.error_handlers import (
    general_exception_handler,
    request_validation_error_handler,
    upstream_error_handler,
    user_error_handler,
)
from codecollab.web.openapi import set_custom_openapi
from codecollab.web.routers import (
    collaboration_router,
    files_router,
    projects_router,
    pusher_router,
    users_router,
)


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="CodeCollab API",
        lifespan=lifespan,
    )

    # Add CORS middleware for the editor frontend
    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(collaboration_router, prefix="/api")
    app.include_router(pusher_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(projects_router, prefix="/api")
    app.include_router(files_router, prefix="/api")

    # Register error handlers
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
