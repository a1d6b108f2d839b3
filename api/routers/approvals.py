from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from api.services.approval_service import ApprovalError, ApprovalService

router = APIRouter(tags=["approvals"])
logger = logging.getLogger(__name__)


def _get_approval_service(request: Request) -> ApprovalService:
    svc = getattr(getattr(request.app, "state", None), "approval_service", None)
    if not svc:
        raise RuntimeError("ApprovalService not configured")
    return svc


def _templates(request: Request):
    tpl = getattr(getattr(request.app, "state", None), "templates", None)
    if tpl:
        return tpl
    raise RuntimeError("Templates not configured")


@router.get("/approval", response_class=HTMLResponse)
def handle_approval(request: Request, token: str = "", action: str = "", reason: str = ""):
    """Landing page for the approve / resubmission links sent to admins."""
    svc = _get_approval_service(request)
    try:
        outcome = svc.process(token, action, reason)
    except ApprovalError as exc:
        if exc.status_code >= 500:
            logger.error("Approval link failed (%s): %s", exc.__class__.__name__, exc.message)
        else:
            logger.info("Approval link rejected with %s: %s", exc.status_code, exc.message)
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    except Exception as exc:
        logger.exception("handle_approval error")
        return PlainTextResponse(f"Server error: {exc}", status_code=500)
    templates = _templates(request)
    return templates.TemplateResponse(
        request,
        "approval_result.html",
        {"status": outcome.status.value, "app_name": svc.app_name},
    )
