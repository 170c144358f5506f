"""
Flight source status schemas.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class SourceInfo(BaseModel):
    """Status of one configured flight source"""
    name: str
    last_sync: Optional[datetime] = None
    is_available: bool
    is_primary: bool
    requires_auth: bool = False


class SourceStatusResponse(BaseModel):
    sources: List[SourceInfo]
    has_available_source: bool
    status_message: str
    last_refreshed_at: Optional[datetime] = None
