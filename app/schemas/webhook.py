from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class RetryRequest(BaseModel):
    days: int = Field(7, ge=1, le=90, description="Look back this many days")
    limit: int = Field(100, ge=1, le=1000, description="Max webhooks to replay")


class RetryResults(BaseModel):
    total: int
    retried: int
    succeeded: int
    still_failing: int


class RetryResponse(BaseModel):
    success: bool = True
    message: str = "Webhook retry completed"
    results: RetryResults


class SyncResponse(BaseModel):
    success: bool = True
    synced: int
    results: List[Dict[str, Any]] = []
    error: Optional[str] = None
