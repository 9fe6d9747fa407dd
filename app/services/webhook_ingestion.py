"""
Webhook Ingestion Pipeline

One delivery runs through:

    RECEIVED -> PARSED -> EXTRACTED -> VALIDATED -> MAPPED -> PERSISTED -> RESPONDED

with terminal failures REJECTED_BAD_SIGNATURE (401), REJECTED_BAD_JSON (400),
REJECTED_VALIDATION (400 on strict endpoints, 200 "skipped" otherwise) and
PERSIST_FAILED (500). Each outcome is also written to the webhook log,
best-effort.

The HMAC check runs only when a secret is configured. Without one every
delivery is accepted unauthenticated.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .datastore import Datastore
from .payload_validator import validate_payload
from .upsert_dispatcher import CONTACTS_TARGET, ContactTarget, UpsertDispatcher
from .webhook_envelope import WebhookEvent, extract_entity, parse_body, primary_subject, resolve_event
from .webhook_errors import BadSignature, MalformedPayload, PersistenceError, ValidationError
from .webhook_log_sink import WebhookLogSink
from ..models.webhook_log import WebhookLogStatus
from ..utils.logging_config import event_type_var, get_logger
from ..utils.sanitization import sanitize_payload
from ..utils.security import verify_signature

logger = get_logger(__name__)


class WebhookState(str, enum.Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    EXTRACTED = "extracted"
    VALIDATED = "validated"
    MAPPED = "mapped"
    PERSISTED = "persisted"
    RESPONDED = "responded"
    IGNORED = "ignored"
    REJECTED_BAD_SIGNATURE = "rejected_bad_signature"
    REJECTED_BAD_JSON = "rejected_bad_json"
    REJECTED_VALIDATION = "rejected_validation"
    PERSIST_FAILED = "persist_failed"


@dataclass
class WebhookOutcome:
    """Final state plus the HTTP response to send"""
    state: WebhookState
    status_code: int
    body: Dict[str, Any]
    event: Optional[WebhookEvent] = None

    @property
    def succeeded(self) -> bool:
        return self.state in (WebhookState.RESPONDED, WebhookState.IGNORED)


class WebhookIngestion:
    def __init__(
        self,
        store: Datastore,
        log_sink: WebhookLogSink,
        contact_target: ContactTarget = CONTACTS_TARGET,
        secret: str = "",
        public_key: str = "",
        strict_validation: bool = False,
        max_payload_bytes: int = 1024 * 1024,
        request_id: str = "-",
    ):
        self.dispatcher = UpsertDispatcher(store, contact_target)
        self.log_sink = log_sink
        self.secret = secret
        self.public_key = public_key
        self.strict_validation = strict_validation
        self.max_payload_bytes = max_payload_bytes
        self.request_id = request_id

    def process(self, raw_body: bytes, signature: Optional[str] = None) -> WebhookOutcome:
        """Run a raw delivery through the whole pipeline"""
        self.log_sink.record_received(raw_body)

        try:
            if not verify_signature(self.secret, raw_body, signature):
                raise BadSignature()
            if len(raw_body) > self.max_payload_bytes:
                raise MalformedPayload(
                    "Payload too large",
                    details=f"{len(raw_body)} > {self.max_payload_bytes} bytes",
                )
            body = parse_body(raw_body, self.public_key or None)
        except BadSignature as e:
            logger.warning(f"[{self.request_id}] Webhook rejected: {e.message}")
            self.log_sink.record(
                "webhook_rejected", WebhookLogStatus.FAILED.value, error_message=e.message
            )
            return WebhookOutcome(WebhookState.REJECTED_BAD_SIGNATURE, e.status_code, e.to_dict())
        except MalformedPayload as e:
            logger.warning(f"[{self.request_id}] Malformed webhook body: {e.details}")
            self.log_sink.record(
                "webhook_malformed", WebhookLogStatus.FAILED.value, error_message=e.details
            )
            return WebhookOutcome(WebhookState.REJECTED_BAD_JSON, e.status_code, e.to_dict())

        logger.debug(f"[{self.request_id}] state={WebhookState.PARSED.value}")
        return self.process_event(body)

    def process_event(self, body: dict, audit: bool = True) -> WebhookOutcome:
        """
        Run an already parsed (and authenticated) event from EXTRACTED on.
        Replays of failed webhooks enter here with audit=False, the replayer
        updates the original log row itself.
        """
        event = resolve_event(body)
        event_type_var.set(event.event_type)

        entity = extract_entity(body)
        subject = primary_subject(event, entity)
        if subject.get("id") is None and event.entity_id:
            subject["id"] = event.entity_id
        logger.debug(f"[{self.request_id}] state={WebhookState.EXTRACTED.value} event={event.event_type}")

        try:
            validate_payload(subject, event.entity_type)
        except ValidationError as e:
            return self._rejected_validation(event, body, e, audit)

        entity = sanitize_payload(entity)
        logger.debug(f"[{self.request_id}] state={WebhookState.VALIDATED.value}")

        try:
            result = self.dispatcher.dispatch(event, entity)
        except PersistenceError as e:
            logger.error(f"[{self.request_id}] {event.event_type} persistence failed: {e.details}")
            self._record(
                audit,
                event.event_type,
                WebhookLogStatus.FAILED.value,
                wix_id=event.entity_id or _text_id(subject),
                data={"event": sanitize_payload(body)},
                error_message=e.details,
            )
            return WebhookOutcome(WebhookState.PERSIST_FAILED, e.status_code, e.to_dict(), event)

        if result.action == "ignored":
            self._record(
                audit,
                "unknown_webhook_event",
                WebhookLogStatus.IGNORED.value,
                wix_id=event.entity_id,
                data={"event_type": event.event_type, "event_data": sanitize_payload(body)},
            )
            state = WebhookState.IGNORED
        else:
            self._record(
                audit,
                event.event_type,
                WebhookLogStatus.SUCCESS.value,
                wix_id=result.wix_id,
                data={"result": result.to_dict()},
            )
            state = WebhookState.RESPONDED

        logger.webhook_outcome(event.event_type, result.action, 200, result.wix_id)
        return WebhookOutcome(
            state,
            200,
            {"success": True, "eventType": event.event_type, "result": result.to_dict()},
            event,
        )

    def _record(self, audit: bool, *args, **kwargs):
        if audit:
            self.log_sink.record(*args, **kwargs)

    def _rejected_validation(
        self, event: WebhookEvent, body: dict, error: ValidationError, audit: bool
    ) -> WebhookOutcome:
        logger.warning(f"[{self.request_id}] {event.event_type} failed validation: {error.details}")
        if self.strict_validation:
            self._record(
                audit,
                event.event_type,
                WebhookLogStatus.FAILED.value,
                wix_id=event.entity_id,
                error_message=error.details,
            )
            return WebhookOutcome(WebhookState.REJECTED_VALIDATION, error.status_code, error.to_dict(), event)

        self._record(
            audit,
            event.event_type,
            WebhookLogStatus.SKIPPED.value,
            wix_id=event.entity_id,
            data={"event": sanitize_payload(body)},
            error_message=error.details,
        )
        return WebhookOutcome(
            WebhookState.REJECTED_VALIDATION,
            200,
            {"success": False, "skipped": True, "eventType": event.event_type, "error": error.details},
            event,
        )


def _text_id(entity: dict) -> Optional[str]:
    value = entity.get("id")
    return str(value) if value is not None else None
