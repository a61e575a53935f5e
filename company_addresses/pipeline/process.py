"""Per-row orchestration: resolve, date, cite, emit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from company_addresses.common.config_loader import ProvenanceConfig
from company_addresses.common.logging import log_event
from company_addresses.common.models import OutputRecord, RawRecord, RunMetadata
from company_addresses.pipeline.emit import OutputEmitter
from company_addresses.pipeline.provenance import build_provenance
from company_addresses.pipeline.resolve import AddressResolver
from company_addresses.pipeline.valid_at import valid_at_for


@dataclass
class RunStats:
    rows_in: int = 0
    resolved: int = 0
    emitted: int = 0
    unresolved: int = 0


def build_output_record(
    record: RawRecord,
    resolver: AddressResolver,
    run: RunMetadata,
    *,
    provenance_config: ProvenanceConfig,
    valid_at_indices: Sequence[int],
) -> OutputRecord | None:
    resolved = resolver.resolve(record)
    if resolved is None:
        return None
    return OutputRecord(
        address=resolved,
        valid_at=valid_at_for(record, valid_at_indices),
        provenance=build_provenance(
            resolved,
            run,
            repository_url=provenance_config.repository_url,
            script_path=provenance_config.script_path,
        ),
    )


def run_pipeline(
    records: Iterable[RawRecord],
    *,
    resolver: AddressResolver,
    emitter: OutputEmitter,
    run: RunMetadata,
    provenance_config: ProvenanceConfig,
    valid_at_indices: Sequence[int],
    logger: logging.Logger | None = None,
    source_name: str | None = None,
) -> RunStats:
    log = logger or logging.getLogger(__name__)
    stats = RunStats()
    for record in records:
        stats.rows_in += 1
        output = build_output_record(
            record,
            resolver,
            run,
            provenance_config=provenance_config,
            valid_at_indices=valid_at_indices,
        )
        if output is None:
            stats.unresolved += 1
            continue
        stats.resolved += 1
        emitter.emit(output)
        stats.emitted += 1

    log_event(
        log,
        "processing finished",
        stage="process",
        source=source_name,
        event="PROCESS_END",
        status="ok" if stats.unresolved == 0 else "partial",
        rows_in=stats.rows_in,
        rows_out=stats.emitted,
    )
    return stats
