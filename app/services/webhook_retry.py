"""
Failed Webhook Replay

Re-runs webhooks whose primary write failed. Failed log rows keep the
parsed event under data["event"]; replays skip signature checks since the
event was authenticated when first received.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict

from sqlalchemy.orm import Session

from .webhook_ingestion import WebhookIngestion
from ..models.webhook_log import WebhookLog, WebhookLogStatus

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 7
DEFAULT_LIMIT = 100


class WebhookRetryService:
    def __init__(self, db: Session, ingestion: WebhookIngestion):
        self.db = db
        self.ingestion = ingestion

    def get_failed(self, days: int = DEFAULT_DAYS, limit: int = DEFAULT_LIMIT):
        """Failed webhooks logged within the last `days`, newest first"""
        since = datetime.utcnow() - timedelta(days=days)
        return (
            self.db.query(WebhookLog)
            .filter(
                WebhookLog.webhook_status == WebhookLogStatus.FAILED.value,
                WebhookLog.logged_at >= since,
            )
            .order_by(WebhookLog.logged_at.desc())
            .limit(limit)
            .all()
        )

    def retry_failed(self, days: int = DEFAULT_DAYS, limit: int = DEFAULT_LIMIT) -> Dict[str, int]:
        failed = self.get_failed(days, limit)
        results = {"total": len(failed), "retried": 0, "succeeded": 0, "still_failing": 0}

        for log in failed:
            event = (log.data or {}).get("event") if isinstance(log.data, dict) else None
            results["retried"] += 1

            if not isinstance(event, dict):
                # Rejected before parsing; nothing to replay
                results["still_failing"] += 1
                continue

            logger.info(f"Retrying webhook {log.id} ({log.event_type})")
            outcome = self.ingestion.process_event(event, audit=False)

            if outcome.succeeded:
                log.webhook_status = WebhookLogStatus.RETRIED_SUCCESS.value
                log.retried_at = datetime.utcnow()
                log.error_message = None
                results["succeeded"] += 1
            else:
                log.retried_at = datetime.utcnow()
                log.error_message = outcome.body.get("details") or outcome.body.get("error")
                results["still_failing"] += 1
            self.db.commit()

        logger.info(
            f"Webhook retry done: {results['succeeded']} succeeded, "
            f"{results['still_failing']} still failing of {results['total']}"
        )
        return results
