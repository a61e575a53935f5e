"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from company_addresses.common.constants import SOURCE_TYPE
from company_addresses.common.time_utils import isoformat_utc


@dataclass(frozen=True)
class RawRecord:
    line_number: int
    fields: tuple[str, ...]

    def field(self, index: int) -> str | None:
        if 0 <= index < len(self.fields):
            return self.fields[index]
        return None


@dataclass(frozen=True)
class ResolvedAddress:
    paon: str
    street: str
    town: str
    saon: str | None = None
    locality: str | None = None
    postcode: str | None = None
    street_url: str | None = None
    locality_url: str | None = None
    town_url: str | None = None
    postcode_url: str | None = None

    def source_url(self, part: str) -> str | None:
        return getattr(self, f"{part}_url")

    def to_dict(self) -> dict[str, Any]:
        return {
            "saon": self.saon,
            "paon": self.paon,
            "street": self.street,
            "locality": self.locality,
            "town": self.town,
            "postcode": self.postcode,
        }


@dataclass(frozen=True)
class RunMetadata:
    """Read-only facts about a processing run, fixed before the first row."""

    origin_url: str
    downloaded_at: datetime
    revision: str | None = None


@dataclass(frozen=True)
class Source:
    urls: tuple[str, ...]
    downloaded_at: datetime
    processing_script: str
    type: str = SOURCE_TYPE

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "urls": list(self.urls),
            "downloaded_at": isoformat_utc(self.downloaded_at),
            "processing_script": self.processing_script,
        }


@dataclass(frozen=True)
class ProvenanceRecord:
    executed_at: datetime
    processing_scripts: str
    derived_from: tuple[Source, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "activity": {
                "executed_at": isoformat_utc(self.executed_at),
                "processing_scripts": self.processing_scripts,
                "derived_from": [source.to_dict() for source in self.derived_from],
            }
        }


@dataclass(frozen=True)
class OutputRecord:
    address: ResolvedAddress
    valid_at: date | None
    provenance: ProvenanceRecord

    def to_dict(self) -> dict[str, Any]:
        payload = self.address.to_dict()
        payload["valid_at"] = self.valid_at.isoformat() if self.valid_at is not None else None
        payload["provenance"] = self.provenance.to_dict()
        return payload
