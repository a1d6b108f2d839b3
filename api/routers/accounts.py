from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from api.services.account_service import (
    AccountDeletionError,
    AccountService,
    IdentityProviderError,
)

router = APIRouter(prefix="/auth", tags=["accounts"])
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _get_account_service(request: Request) -> AccountService:
    svc = getattr(getattr(request.app, "state", None), "account_service", None)
    if not svc:
        raise RuntimeError("AccountService not configured")
    return svc


def _json(payload: dict, status_code: int) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=CORS_HEADERS)


@router.api_route("/delete-user", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def delete_user(request: Request):
    """Remove a Firebase Auth account. Body: ``{"userId": ..., "adminToken": ...}``."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    if request.method != "POST":
        return _json({"error": "Method not allowed"}, 405)

    raw = await request.body()
    try:
        payload = json.loads(raw or b"{}")
    except ValueError:
        return _json({"error": "Invalid JSON body"}, 400)
    if not isinstance(payload, dict):
        return _json({"error": "Invalid JSON body"}, 400)

    svc = _get_account_service(request)
    try:
        message = await run_in_threadpool(svc.delete_account, payload.get("userId"), payload.get("adminToken"))
    except IdentityProviderError as exc:
        return _json({"error": "Failed to delete user", "message": exc.message}, exc.status_code)
    except AccountDeletionError as exc:
        return _json({"error": exc.message}, exc.status_code)
    logger.info(message)
    return _json({"success": True, "message": message}, 200)
