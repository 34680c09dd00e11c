"""Inbound Alloy webhook endpoint."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from alloy_connector.dependencies import WebhookTrigger

router = APIRouter(tags=["Webhooks"])


@router.post("/webhooks/alloy")
async def receive_alloy_webhook(request: Request, trigger: WebhookTrigger) -> JSONResponse:
    """Verify and process one Alloy event delivery.

    The raw body is read before any parsing so the signature is checked against
    the exact bytes Alloy signed.
    """
    body = await request.body()
    result = await trigger.handle(body, request.headers)
    return JSONResponse(status_code=result.status_code, content=result.body)
