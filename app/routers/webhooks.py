"""
Wix Webhooks Router

- POST /api/webhook-router: all Wix domain events (contacts, bookings,
  orders, loyalty, products). Best-effort on validation failures.
- POST /api/wix-webhook: flat `eventType` deliveries writing slim
  `customers`. Strict: missing ids are rejected with 400.
- POST /api/retry-failed-webhooks: replay failed deliveries from webhook_logs.

Security:
- HMAC-SHA256 x-wix-signature, enforced only when WIX_WEBHOOK_SECRET is set
- Per-IP rate limit
- request_id in all logs
"""

import uuid
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db, get_session_factory
from ..schemas.webhook import RetryRequest, RetryResponse
from ..services.datastore import Datastore
from ..services.upsert_dispatcher import CONTACTS_TARGET, CUSTOMERS_TARGET, ContactTarget
from ..services.webhook_ingestion import WebhookIngestion
from ..services.webhook_log_sink import WebhookLogSink
from ..services.webhook_retry import WebhookRetryService
from ..utils.logging_config import set_request_context
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api", tags=["Webhooks"])


def get_request_id(request: Request) -> str:
    """Get request_id from request state or generate one"""
    return getattr(request.state, 'request_id', str(uuid.uuid4())[:8])


def build_ingestion(
    db: Session,
    session_factory,
    endpoint: str,
    request_id: str,
    contact_target: ContactTarget = CONTACTS_TARGET,
    strict_validation: bool = False,
) -> WebhookIngestion:
    return WebhookIngestion(
        store=Datastore(db),
        log_sink=WebhookLogSink(session_factory, endpoint=endpoint),
        contact_target=contact_target,
        secret=settings.wix_webhook_secret,
        public_key=settings.wix_public_key,
        strict_validation=strict_validation,
        max_payload_bytes=settings.max_payload_bytes,
        request_id=request_id,
    )


@router.post("/webhook-router")
@limiter.limit(get_rate_limit("webhook"))
async def webhook_router(
    request: Request,
    x_wix_signature: Optional[str] = Header(None, alias="x-wix-signature"),
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    """
    Receive Wix domain events.

    Returns 200 {success: true} once the entity is persisted (even if the
    audit log write failed), 400 for malformed bodies, 401 for a bad
    signature and 500 {error, details} when the primary write fails.
    """
    request_id = get_request_id(request)
    set_request_context(request_id)

    body = await request.body()
    ingestion = build_ingestion(db, session_factory, "webhook-router", request_id)
    outcome = ingestion.process(body, x_wix_signature)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.post("/wix-webhook")
@limiter.limit(get_rate_limit("webhook"))
async def wix_webhook(
    request: Request,
    x_wix_signature: Optional[str] = Header(None, alias="x-wix-signature"),
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    """Flat eventType deliveries (bookings.appointment_*, contacts.contact_*, stores.order_*)"""
    request_id = get_request_id(request)
    set_request_context(request_id)

    body = await request.body()
    ingestion = build_ingestion(
        db,
        session_factory,
        "wix-webhook",
        request_id,
        contact_target=CUSTOMERS_TARGET,
        strict_validation=True,
    )
    outcome = ingestion.process(body, x_wix_signature)
    if outcome.status_code == 200:
        return {"success": True, "eventType": outcome.body.get("eventType")}
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.get("/wix-webhook")
async def wix_webhook_health():
    return {
        "status": "ok",
        "service": "wix-webhook-handler",
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.post("/retry-failed-webhooks", response_model=RetryResponse)
@limiter.limit(get_rate_limit("retry"))
def retry_failed_webhooks(
    request: Request,
    retry: Optional[RetryRequest] = None,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    """Replay webhooks whose primary write failed within the last `days`"""
    request_id = get_request_id(request)
    retry = retry or RetryRequest()

    ingestion = build_ingestion(db, session_factory, "retry", request_id)
    service = WebhookRetryService(db, ingestion)
    try:
        results = service.retry_failed(days=retry.days, limit=retry.limit)
    except SQLAlchemyError as e:
        db.rollback()
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return RetryResponse(results=results)
