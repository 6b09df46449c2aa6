from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="CodeCollab API",
            version="0.1.0",
            summary="Collaboration sessions and realtime presence for the online code editor",
            routes=app.routes,
        )

        openapi_schema["tags"] = [
            {"name": "collaboration", "description": "Session lifecycle: create, join, inspect, leave"},
            {"name": "pusher", "description": "Presence channel authorization and event relay"},
            {"name": "users", "description": "Display profiles embedded in presence data"},
            {"name": "projects", "description": "Projects that collaboration sessions are bound to"},
            {"name": "files", "description": "Source files stored in a project"},
        ]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Session 'f3c1...' not found", "type": "not_found"},
                {"message": "Invalid authentication token", "type": "auth_rejected"},
                {"message": "Invalid or missing fields: userName", "type": "validation_error"},
            ]
        }
    }


class SuccessResponse(BaseModel):
    success: bool = True
