"""
Webhook Log Sink

Best-effort audit writes to `webhook_logs`. Each write uses a fresh session
from the factory so it commits independently of the business write, and a
failure here never changes the webhook response.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from .webhook_errors import LogSinkError
from ..models.webhook_log import WebhookLog, WebhookLogStatus
from ..utils.sanitization import safe_truncate

logger = logging.getLogger(__name__)

# Raw bodies are stored as a preview only
BODY_PREVIEW_LENGTH = 1000


class WebhookLogSink:
    def __init__(self, session_factory: Callable[[], Session], endpoint: Optional[str] = None):
        self.session_factory = session_factory
        self.endpoint = endpoint

    def _write(self, entry: WebhookLog):
        db = self.session_factory()
        try:
            db.add(entry)
            db.commit()
        except Exception as e:
            db.rollback()
            raise LogSinkError(details=str(e)) from e
        finally:
            db.close()

    def record(
        self,
        event_type: str,
        status: str,
        wix_id: Optional[str] = None,
        data: Optional[Any] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        """Append a log row. Returns False (and warns) if the write failed."""
        entry = WebhookLog(
            event_type=event_type,
            webhook_status=status,
            wix_id=wix_id,
            endpoint=self.endpoint,
            error_message=error_message,
            data=data,
            logged_at=datetime.utcnow(),
        )
        try:
            self._write(entry)
        except LogSinkError as e:
            logger.warning(f"Webhook log write failed ({event_type}/{status}): {e.details}")
            return False
        except Exception as e:
            logger.warning(f"Webhook log sink unavailable ({event_type}/{status}): {e}")
            return False
        return True

    def record_received(self, raw_body: bytes) -> bool:
        preview = safe_truncate(raw_body.decode("utf-8", errors="replace"), BODY_PREVIEW_LENGTH)
        return self.record(
            "webhook_received",
            WebhookLogStatus.RECEIVED.value,
            data={"body_preview": preview, "received_at": datetime.utcnow().isoformat()},
        )
