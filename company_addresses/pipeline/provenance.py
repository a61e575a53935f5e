"""Provenance records citing the source archive and resolver field sources."""

from __future__ import annotations

from datetime import datetime

from company_addresses.common.constants import PROVENANCE_PARTS
from company_addresses.common.models import ProvenanceRecord, ResolvedAddress, RunMetadata, Source
from company_addresses.common.time_utils import utc_now


def processing_script_url(repository_url: str, script_path: str, revision: str | None) -> str:
    base = repository_url.rstrip("/")
    path = script_path.lstrip("/")
    if revision:
        return f"{base}/tree/{revision}/{path}"
    return f"{base}/{path}"


def build_provenance(
    resolved: ResolvedAddress,
    run: RunMetadata,
    *,
    repository_url: str,
    script_path: str,
    now: datetime | None = None,
) -> ProvenanceRecord:
    built_at = now or utc_now()
    script = processing_script_url(repository_url, script_path, run.revision)

    sources = [
        Source(
            urls=(run.origin_url,),
            downloaded_at=run.downloaded_at,
            processing_script=script,
        )
    ]
    for part in PROVENANCE_PARTS:
        url = resolved.source_url(part)
        if url is None:
            continue
        sources.append(Source(urls=(url,), downloaded_at=built_at, processing_script=script))

    return ProvenanceRecord(
        executed_at=built_at,
        processing_scripts=repository_url,
        derived_from=tuple(sources),
    )
