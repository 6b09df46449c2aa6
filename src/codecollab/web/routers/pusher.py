"""Presence channel endpoints called by the Pusher client."""

from typing import Annotated, Any

from fastapi import APIRouter, Form
from pydantic import BaseModel, Field

from codecollab.core.modules.auth.models import ChannelGrant
from codecollab.errors import ValidationError
from codecollab.web.deps import AppDep
from codecollab.web.openapi import ErrorResponse, SuccessResponse

router = APIRouter(tags=["pusher"])


class TriggerRequest(BaseModel):
    """Event to relay to a channel."""

    channel: str = Field(..., min_length=1, description="Target channel name")
    event: str = Field(..., min_length=1, description="Event name, e.g. code-update")
    data: Any = Field(None, description="Event payload, any JSON value")


@router.post(
    "/pusher/auth",
    summary="Authorize presence channel",
    description=(
        "Channel authorization endpoint for the Pusher client. Verifies the collaboration token "
        "and returns a signed grant carrying the user's presence data."
    ),
    operation_id="authorizeChannel",
    responses={
        200: {"description": "Signed channel grant"},
        400: {"model": ErrorResponse, "description": "Missing fields or not a collaboration channel"},
        403: {"model": ErrorResponse, "description": "Invalid authentication token"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def authorize_channel(
    app: AppDep,
    socket_id: Annotated[str, Form(min_length=1)],
    channel_name: Annotated[str, Form(min_length=1)],
    user_id: Annotated[str, Form(min_length=1)],
    auth_token: Annotated[str, Form(min_length=1)],
) -> ChannelGrant:
    return await app.authorize_channel(socket_id, channel_name, user_id, auth_token)


@router.post(
    "/pusher/trigger",
    summary="Trigger channel event",
    description="Relay a client event such as code-update to every subscriber of a channel.",
    operation_id="triggerEvent",
    responses={
        200: {"description": "Event delivered to the channel service"},
        400: {"model": ErrorResponse, "description": "Missing fields, reserved event name or payload too large"},
    },
)
async def trigger_event(req: TriggerRequest, app: AppDep) -> SuccessResponse:
    # null, "", 0 and false count as missing; {} and [] do not
    if not req.data and not isinstance(req.data, dict | list):
        raise ValidationError("Channel, event, and data are required")
    await app.trigger_event(req.channel, req.event, req.data)
    return SuccessResponse()
