"""Selection of the date an address is asserted to be valid at."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Sequence

from company_addresses.common.models import RawRecord

# Companies House exports use day-first dates.
DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


def parse_candidate_date(value: str | None) -> date | None:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    try:
        return datetime.fromisoformat(cleaned).date()
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def select_valid_at(candidates: Iterable[str | None]) -> date | None:
    parsed = [d for d in (parse_candidate_date(value) for value in candidates) if d is not None]
    if not parsed:
        return None
    return max(parsed)


def valid_at_for(record: RawRecord, indices: Sequence[int]) -> date | None:
    return select_valid_at(record.field(idx) for idx in indices)
