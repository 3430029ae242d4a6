"""
Webhook Routes

Trigger configured webhooks with generated content, send test payloads and
read execution logs.
"""

import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Any, Dict, Optional

from app.middleware.rate_limit import rate_limit
from app.services.webhook_service import WebhookService
from core.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


class TriggerWebhookRequest(BaseModel):
    """Request model for triggering a webhook"""
    webhook_id: str
    content_id: str


class TestWebhookRequest(BaseModel):
    """Optional overrides merged into the sample content"""
    test_data: Optional[Dict[str, Any]] = None


def get_webhook_service() -> WebhookService:
    return WebhookService()


@router.get("/webhooks")
async def list_webhooks(
    user_id: str = Depends(rate_limit('webhooks')),
    service: WebhookService = Depends(get_webhook_service),
):
    webhooks = await asyncio.to_thread(service.list_webhooks, user_id)
    return {'webhooks': webhooks}


@router.post("/webhooks/trigger")
async def trigger_webhook(
    request: TriggerWebhookRequest,
    user_id: str = Depends(rate_limit('webhooks_trigger')),
    service: WebhookService = Depends(get_webhook_service),
):
    """
    Send generated content through a webhook

    Upstream failures are reported as 502 with the execution details.
    """
    logger.info(f"🔗 Trigger webhook {request.webhook_id} with content {request.content_id}")

    try:
        result = await asyncio.to_thread(
            service.trigger_webhook, user_id, request.webhook_id, request.content_id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    body = {
        'success': result['success'],
        'status_code': result['status_code'],
        'duration_ms': result['duration_ms'],
    }
    if result['success']:
        return {**body, 'message': 'Webhook triggered successfully'}

    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={**body, 'error': result['error']},
    )


@router.post("/webhooks/{webhook_id}/test")
async def test_webhook(
    webhook_id: str,
    request: Optional[TestWebhookRequest] = None,
    user_id: str = Depends(rate_limit('webhooks_test')),
    service: WebhookService = Depends(get_webhook_service),
):
    """Send sample content through a webhook; nothing is logged"""
    test_data = request.test_data if request else None

    try:
        return await asyncio.to_thread(service.test_webhook, user_id, webhook_id, test_data)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/webhooks/{webhook_id}/logs")
async def get_webhook_logs(
    webhook_id: str,
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(rate_limit('webhooks')),
    service: WebhookService = Depends(get_webhook_service),
):
    try:
        logs = await asyncio.to_thread(service.get_webhook_logs, webhook_id, user_id, limit)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {'logs': logs}
