"""
Webhook Log Model

Append-only audit trail of webhook deliveries. Rows are written on a
session of their own so a failed business write never rolls them back.
Failed rows keep the parsed event in `data` for later replay.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Index, JSON
from ..database import Base
import enum


class WebhookLogStatus(str, enum.Enum):
    RECEIVED = "received"
    SUCCESS = "success"
    FAILED = "failed"
    IGNORED = "ignored"  # Unknown or unsupported event
    SKIPPED = "skipped"  # Failed validation on the lenient receiver
    RETRIED_SUCCESS = "retried_success"


class WebhookLog(Base):
    __tablename__ = "webhook_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_type = Column(String(255), nullable=True)
    webhook_status = Column(String(30), default=WebhookLogStatus.RECEIVED.value)
    wix_id = Column(String(255), nullable=True)
    endpoint = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)
    data = Column(JSON, nullable=True)

    logged_at = Column(DateTime, default=datetime.utcnow)
    retried_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_webhook_logs_status_logged", "webhook_status", "logged_at"),
    )

    def __repr__(self):
        return f"<WebhookLog {self.event_type} - {self.webhook_status}>"
