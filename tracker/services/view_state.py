"""Filter, search, sort and count the cached records for display.

Everything here is a pure function of the cached record set and the three
user selections; it never touches the store and never mutates its input.
"""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, Tuple, Union

from tracker.models.record import ApplicationRecord, ApplicationStatus, RecordSet

ALL = "all"

StatusFilter = Union[str, ApplicationStatus]


class SortOption(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    COMPANY_AZ = "company-az"
    COMPANY_ZA = "company-za"


def parse_status_filter(value: StatusFilter) -> StatusFilter:
    """Return ``"all"`` or the matching status; raise ValueError otherwise."""
    if value == ALL:
        return ALL
    return ApplicationStatus(value)


@dataclass(frozen=True)
class ViewState:
    items: RecordSet
    counts: Dict[str, int]

    @property
    def total(self) -> int:
        return self.counts[ALL]


def _created_key(record: ApplicationRecord) -> float:
    created_at = record.created_at
    if not isinstance(created_at, datetime):
        return 0.0
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at.timestamp()


def _company_key(record: ApplicationRecord) -> Tuple[str, str]:
    # Accents sort next to their base letter, then by the accented form.
    folded = unicodedata.normalize("NFKD", record.company.casefold())
    base = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return base, folded


def matches_status(record: ApplicationRecord, status_filter: StatusFilter) -> bool:
    return status_filter == ALL or record.status == status_filter


def matches_search(record: ApplicationRecord, normalized_search: str) -> bool:
    if normalized_search == "":
        return True
    haystack = f"{record.company} {record.role} {record.notes or ''}".lower()
    return normalized_search in haystack


def status_counts(records: Iterable[ApplicationRecord]) -> Dict[str, int]:
    counts = {status.value: 0 for status in ApplicationStatus}
    total = 0
    for record in records:
        total += 1
        if record.status.value in counts:
            counts[record.status.value] += 1
    counts[ALL] = total
    return counts


def sort_records(records: Iterable[ApplicationRecord], sort: SortOption) -> RecordSet:
    sort = SortOption(sort)
    # Ties fall back to id ascending: stable sorts keep this pre-ordering.
    ordered = sorted(records, key=lambda record: record.id)
    if sort is SortOption.NEWEST:
        ordered.sort(key=_created_key, reverse=True)
    elif sort is SortOption.OLDEST:
        ordered.sort(key=_created_key)
    elif sort is SortOption.COMPANY_AZ:
        ordered.sort(key=_company_key)
    else:
        ordered.sort(key=_company_key, reverse=True)
    return tuple(ordered)


def derive_view(
    records: Iterable[ApplicationRecord],
    status_filter: StatusFilter = ALL,
    search: str = "",
    sort: SortOption = SortOption.NEWEST,
) -> ViewState:
    records = tuple(records)
    normalized_search = (search or "").strip().lower()
    filtered = [
        record
        for record in records
        if matches_status(record, status_filter) and matches_search(record, normalized_search)
    ]
    return ViewState(items=sort_records(filtered, sort), counts=status_counts(records))
