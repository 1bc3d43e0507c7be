"""Account deletion endpoint (GDPR Article 17 - Right to Erasure).

A single action-style endpoint called by the web client:

    POST /api/v1/account-deletion  {"action": "...", "user_id": "..."}

with ``action`` one of ``request_deletion``, ``cancel_deletion`` or
``get_status``.
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.deps import get_db
from app.core.rate_limiting import default_limit, limiter
from app.schemas.account_deletion import DeletionActionIn
from app.services.account_deletion import (
    InvalidArgumentError,
    manage_account_deletion,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account-deletion", tags=["account-deletion"])


def _reject(message: str, action: Any = None, user_id: Any = None) -> InvalidArgumentError:
    logger.warning(f"Account deletion action: {action} for user: {user_id} rejected: {message}")
    return InvalidArgumentError(message)


async def _parse_body(request: Request) -> DeletionActionIn:
    """Parse the JSON body, reporting anything malformed as a 400."""
    try:
        payload: Any = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise _reject("Request body must be valid JSON") from e

    if not isinstance(payload, dict):
        raise _reject("Request body must be a JSON object")

    try:
        return DeletionActionIn.model_validate(payload)
    except ValidationError as e:
        raise _reject(
            "action and user_id must be strings",
            payload.get("action"),
            payload.get("user_id"),
        ) from e


@router.post("")
@limiter.limit(default_limit)
async def account_deletion(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> JSONResponse:
    """Request, cancel or inspect the caller's account deletion.

    Requesting schedules the deletion after the grace period; only one
    request can be pending per user. Errors are returned as
    ``{"error": message}``.
    """
    body = await _parse_body(request)
    result = await run_in_threadpool(manage_account_deletion, db, body.action, body.user_id)
    return JSONResponse(content=result)
