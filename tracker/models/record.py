from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


class ApplicationStatus(str, Enum):
    APPLIED = "applied"
    ONLINE_ASSESSMENT = "online_assessment"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @classmethod
    def coerce(cls, value: Any) -> "ApplicationStatus":
        """Map a stored status to a member, falling back to ``applied``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.APPLIED


STATUS_LABELS = {
    ApplicationStatus.APPLIED: "Applied",
    ApplicationStatus.ONLINE_ASSESSMENT: "Online Assessment",
    ApplicationStatus.INTERVIEW: "Interview",
    ApplicationStatus.OFFER: "Offer",
    ApplicationStatus.REJECTED: "Rejected",
}


@dataclass(frozen=True)
class ApplicationRecord:
    id: str
    company: str
    role: str
    status: ApplicationStatus = ApplicationStatus.APPLIED
    notes: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "ApplicationRecord":
        created_at = data.get("createdAt")
        return cls(
            id=doc_id,
            company=_text(data.get("company")),
            role=_text(data.get("role")),
            status=ApplicationStatus.coerce(data.get("status")),
            notes=_text(data.get("notes")),
            created_at=created_at if isinstance(created_at, datetime) else None,
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


RecordSet = Tuple[ApplicationRecord, ...]
