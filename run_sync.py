#!/usr/bin/env python
"""
Full Wix resync

Pulls bookings, contacts, orders and products from the Wix REST API and
upserts them into the database.

Run with:
    python run_sync.py            # everything, contacts first
    python run_sync.py bookings   # one entity
"""

import os
import sys
import logging

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app.config import settings
from app.database import SessionLocal, create_tables
from app.services.bulk_sync import BulkSyncService, SYNC_TARGETS
from app.services.datastore import Datastore
from app.services.webhook_errors import PersistenceError
from app.services.wix_client import WixAPIError, WixClient
from app.utils.logging_config import setup_logging

logger = logging.getLogger("run_sync")


def main(argv):
    setup_logging(level=settings.log_level, json_format=settings.log_json, include_uvicorn=False)

    entity = argv[1] if len(argv) > 1 else "all"
    if entity != "all" and entity not in SYNC_TARGETS:
        logger.error(f"Unknown entity '{entity}', expected one of: all, {', '.join(SYNC_TARGETS)}")
        return 2
    if not settings.wix_access_token:
        logger.error("WIX_ACCESS_TOKEN is not configured")
        return 2

    create_tables()
    db = SessionLocal()
    try:
        service = BulkSyncService(
            Datastore(db),
            WixClient(settings.wix_access_token),
            batch_size=settings.sync_batch_size,
        )
        results = service.sync_all() if entity == "all" else [service.sync(entity)]
    except (WixAPIError, PersistenceError) as e:
        logger.error(f"Sync failed: {e}")
        return 1
    finally:
        db.close()

    for result in results:
        logger.info(f"{result.entity}: {result.synced}/{result.fetched} synced in {result.batches} batch(es)")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
