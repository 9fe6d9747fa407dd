"""
Webhook Error Hierarchy

Each stage of the ingestion pipeline raises one of these. The HTTP layer
turns them into responses with `status_code` and `to_dict()`.
"""

from typing import Optional, Dict, Any


class WebhookError(Exception):
    """Base exception for webhook ingestion failures"""

    status_code: int = 500
    default_message: str = "Webhook processing failed"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Response body: {error} or {error, details}"""
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class BadSignature(WebhookError):
    """x-wix-signature mismatch, or a JWT envelope failing verification"""
    status_code = 401
    default_message = "Invalid signature"


class MalformedPayload(WebhookError):
    """Body is not JSON, not an object, oversize or an undecodable JWT"""
    status_code = 400
    default_message = "Invalid JSON"


class ValidationError(WebhookError):
    """A required field of a known entity schema is missing"""
    status_code = 400
    default_message = "Validation failed"


class PersistenceError(WebhookError):
    """Datastore write of the primary entity failed"""
    status_code = 500
    default_message = "Processing failed"


class LogSinkError(WebhookError):
    """Webhook log write failed. Never surfaces to the caller."""
    default_message = "Webhook log write failed"
