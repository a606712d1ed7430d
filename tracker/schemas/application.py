from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from tracker.models.record import ApplicationStatus
from tracker.services.view_state import SortOption


class ApplicationRequest(BaseModel):
    company: str
    role: str
    status: ApplicationStatus = ApplicationStatus.APPLIED
    notes: str = ""


class ApplicationResponse(BaseModel):
    id: str
    company: str
    role: str
    status: ApplicationStatus
    notes: str = ""
    created_at: Optional[datetime] = None


class ApplicationCreatedResponse(BaseModel):
    id: str


class ApplicationListResponse(BaseModel):
    items: List[ApplicationResponse]
    counts: Dict[str, int]
    total: int
    status_filter: str
    search: str
    sort: SortOption
