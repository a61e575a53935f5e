"""Address resolution against the sorting office service."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from company_addresses.common.http import HttpClient, RetryExhaustedError, TimeoutConfig
from company_addresses.common.logging import log_event
from company_addresses.common.models import RawRecord, ResolvedAddress

REQUIRED_PARTS = ("street", "town", "paon")


def build_address_query(record: RawRecord, street_indices: Sequence[int], postcode_index: int) -> str:
    parts = [record.field(idx) or "" for idx in street_indices]
    parts.append(record.field(postcode_index) or "")
    return ", ".join(parts)


def _name(part: Any) -> str | None:
    if isinstance(part, dict):
        value = part.get("name")
    else:
        value = part
    if value in (None, ""):
        return None
    return str(value)


def _url(part: Any) -> str | None:
    if not isinstance(part, dict):
        return None
    value = part.get("url")
    if value in (None, ""):
        return None
    return str(value)


def rejection_reason(payload: dict[str, Any]) -> str | None:
    # Any present error value rejects, including falsy ones like 0 or "".
    error = payload.get("error")
    if error is not None and error is not False:
        return "SERVICE_ERROR"
    if _name(payload.get("street")) is None or _name(payload.get("town")) is None:
        return "MISSING_REQUIRED_FIELD"
    if _name(payload.get("paon")) is None:
        return "MISSING_REQUIRED_FIELD"
    return None


def parse_resolution(payload: dict[str, Any]) -> ResolvedAddress | None:
    if rejection_reason(payload) is not None:
        return None
    street = payload.get("street")
    locality = payload.get("locality")
    town = payload.get("town")
    postcode = payload.get("postcode")
    return ResolvedAddress(
        saon=_name(payload.get("saon")),
        paon=_name(payload.get("paon")),
        street=_name(street),
        locality=_name(locality),
        town=_name(town),
        postcode=_name(postcode),
        street_url=_url(street),
        locality_url=_url(locality),
        town_url=_url(town),
        postcode_url=_url(postcode),
    )


class AddressResolver:
    def __init__(
        self,
        client: HttpClient,
        *,
        endpoint: str,
        street_indices: Sequence[int],
        postcode_index: int,
        timeout: TimeoutConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.endpoint = endpoint
        self.street_indices = tuple(street_indices)
        self.postcode_index = postcode_index
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, record: RawRecord) -> ResolvedAddress | None:
        address = build_address_query(record, self.street_indices, self.postcode_index)
        try:
            payload = self.client.post_form_json(
                self.endpoint,
                data={"address": address},
                timeout=self.timeout,
                context=f"address {address!r}",
            )
        except RetryExhaustedError:
            return None

        reason = rejection_reason(payload)
        if reason is not None:
            log_event(
                self.logger,
                f"address {address!r} not resolved",
                level=logging.DEBUG,
                event="UNRESOLVED",
                status="skipped",
                line_number=record.line_number,
                error_code=reason,
            )
            return None
        return parse_resolution(payload)
