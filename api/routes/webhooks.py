"""
Gateway webhook endpoints.

The POST handler answers with the flat JSON ack the gateway expects rather
than the unified Response envelope; GET/HEAD/OPTIONS serve liveness probes
and CORS preflight from the gateway dashboard.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from api.dependencies import get_webhook_service, get_webhook_verifier
from application.ports.payment_gateway import WebhookVerifier
from application.services.webhook_service import WebhookService
from core.settings import payment_settings


router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, x-webhook-signature, x-webhook-timestamp, x-webhook-version",
    "Access-Control-Max-Age": "86400",
}


@router.post("/cashfree", summary="Cashfree payment webhook")
async def cashfree_webhook(request: Request, service: WebhookService = Depends(get_webhook_service)):
    # exact bytes: the signature covers the raw body
    raw_body = await request.body()
    result = await service.handle(request.headers, raw_body)
    return JSONResponse(status_code=result.status_code, content=result.ack.model_dump(exclude_none=True))


@router.get("/cashfree", summary="Webhook liveness check")
async def cashfree_webhook_status(
    test: Optional[str] = Query(default=None),
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
):
    body = {
        "status": "ok",
        "message": "Cashfree webhook endpoint is active",
        "version": payment_settings.webhook.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if test == "webhook":
        body.update(
            {
                "test": True,
                "has_secret": bool(getattr(verifier, "has_secret", False)),
                "insecure_mode": bool(getattr(verifier, "insecure", False)),
            }
        )
    return body


@router.options("/cashfree", include_in_schema=False)
async def cashfree_webhook_preflight():
    return Response(status_code=204, headers=_CORS_HEADERS)


@router.head("/cashfree", include_in_schema=False)
async def cashfree_webhook_head():
    return Response(
        status_code=200,
        headers={
            "X-Webhook-Status": "active",
            "X-Webhook-Version": payment_settings.webhook.version,
        },
    )
