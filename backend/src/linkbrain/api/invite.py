"""Invite code API endpoint.

A single endpoint dispatching on ``action``:

- POST /invite?action=validate - check a code before signup
- POST /invite?action=redeem - redeem a code for a new user
"""

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from linkbrain.api.rate_limit import limiter
from linkbrain.invites.errors import InviteError, StoreError
from linkbrain.invites.service import InviteService, to_iso
from linkbrain.logging_config import get_logger
from linkbrain.settings import settings

logger = get_logger(__name__)

router = APIRouter(tags=["invite"])


def get_invite_service(request: Request) -> InviteService:
    """Return the invite service bound to the running app."""
    return request.app.state.invite_service


async def _read_body(request: Request) -> dict[str, Any]:
    """Parse the JSON body, treating anything but an object as empty."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error(status_code: int, error: InviteError, flag: str | None = None) -> JSONResponse:
    content: dict[str, Any] = {}
    if flag:
        content[flag] = False
    content["error"] = error.message
    content["errorCode"] = error.error_code
    return JSONResponse(status_code=status_code, content=content)


# ==================== HANDLERS ====================


async def _handle_validate(service: InviteService, body: dict[str, Any]) -> JSONResponse:
    try:
        inviter_uid = await asyncio.to_thread(service.validate, body.get("code"))
    except StoreError as e:
        return _error(500, e)
    except InviteError as e:
        return _error(400, e, flag="valid")

    return JSONResponse(status_code=200, content={"valid": True, "inviterUid": inviter_uid})


async def _handle_redeem(service: InviteService, body: dict[str, Any]) -> JSONResponse:
    try:
        result = await asyncio.to_thread(
            service.redeem, body.get("code"), body.get("newUserUid")
        )
    except StoreError as e:
        return _error(500, e)
    except InviteError as e:
        return _error(400, e, flag="success")

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "Invite code redeemed successfully",
            "trialEndDate": to_iso(result.trial_end_date),
            "inviterExtended": result.inviter_extended,
        },
    )


_HANDLERS = {
    "validate": _handle_validate,
    "redeem": _handle_redeem,
}


# ==================== ENDPOINTS ====================


@router.post("/invite")
@limiter.limit(settings.invite_rate_limit)
async def invite(
    request: Request,
    action: str | None = None,
    service: InviteService = Depends(get_invite_service),
):
    """Validate or redeem an invite code.

    ``action`` is read from the query string, then from the body, and
    defaults to ``validate``.
    """
    body = await _read_body(request)
    action = action or body.get("action") or "validate"

    handler = _HANDLERS.get(action) if isinstance(action, str) else None
    if handler is None:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid action", "errorCode": "UNKNOWN_ACTION"},
        )

    try:
        return await handler(service, body)
    except Exception as e:
        logger.exception("invite_request_failed", action=action)
        return JSONResponse(
            status_code=500,
            content={"error": str(e) or "Internal server error"},
        )


@router.api_route(
    "/invite",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def invite_method_not_allowed():
    """Reject anything but POST."""
    return JSONResponse(
        status_code=405,
        content={"error": "Method not allowed", "errorCode": "METHOD_NOT_ALLOWED"},
        headers={"Allow": "POST"},
    )
