"""
Bulk Sync Router

- POST /api/sync/{entity}: full resync of bookings, contacts, orders,
  products, or all of them (contacts first).
"""

import uuid
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..schemas.webhook import SyncResponse
from ..services.bulk_sync import BulkSyncService, SYNC_TARGETS
from ..services.datastore import Datastore
from ..services.webhook_errors import PersistenceError
from ..services.wix_client import WixAPIError, WixClient
from ..utils.logging_config import get_logger
from ..utils.rate_limiter import limiter, get_rate_limit

logger = get_logger(__name__)

router = APIRouter(prefix="/api/sync", tags=["Sync"])


def get_request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', str(uuid.uuid4())[:8])


def get_wix_client(request: Request) -> Optional[WixClient]:
    """Wix client for the configured access token, None when unconfigured"""
    if not settings.wix_access_token:
        return None
    return WixClient(settings.wix_access_token, request_id=get_request_id(request))


@router.post("/{entity}", response_model=SyncResponse)
@limiter.limit(get_rate_limit("sync"))
def sync_entity(
    entity: str,
    request: Request,
    db: Session = Depends(get_db),
    client: Optional[WixClient] = Depends(get_wix_client),
):
    if entity != "all" and entity not in SYNC_TARGETS:
        raise HTTPException(status_code=404, detail=f"Unknown sync entity: {entity}")
    if client is None:
        raise HTTPException(status_code=503, detail="WIX_ACCESS_TOKEN is not configured")

    request_id = get_request_id(request)
    service = BulkSyncService(Datastore(db), client, batch_size=settings.sync_batch_size)

    try:
        results = service.sync_all() if entity == "all" else [service.sync(entity)]
    except (WixAPIError, PersistenceError) as e:
        logger.error(f"[{request_id}] Sync of {entity} failed: {e}")
        return JSONResponse(status_code=500, content={"success": False, "synced": 0, "error": str(e)})

    return SyncResponse(
        synced=sum(r.synced for r in results),
        results=[r.to_dict() for r in results],
    )
