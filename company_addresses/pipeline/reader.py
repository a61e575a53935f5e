"""Line-by-line CSV reading with malformed-row isolation."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator

from company_addresses.common.logging import log_event
from company_addresses.common.models import RawRecord

LineSource = Callable[[], Iterable[str]]


def _parse_line(line: str) -> list[str]:
    # Each physical line is parsed on its own; a quoted field spanning lines is malformed.
    return next(csv.reader([line], strict=True), [])


def iter_records(
    lines: Iterable[str],
    *,
    postcode_index: int,
    logger: logging.Logger | None = None,
) -> Iterator[RawRecord]:
    """Yield rows carrying a postcode, skipping the header and malformed lines."""
    log = logger or logging.getLogger(__name__)
    for line_number, line in enumerate(lines, start=1):
        if line_number == 1:
            continue
        try:
            fields = _parse_line(line)
        except csv.Error as exc:
            log_event(
                log,
                f"Bad line found at line {line_number} - {line.rstrip()}",
                level=logging.WARNING,
                event="BAD_LINE",
                status="skipped",
                line_number=line_number,
                error_code="MALFORMED_ROW",
            )
            log.debug("csv error at line %s: %s", line_number, exc)
            continue

        record = RawRecord(line_number=line_number, fields=tuple(fields))
        if not record.field(postcode_index):
            continue
        yield record


def file_lines(path: Path) -> LineSource:
    def _open() -> Iterator[str]:
        # Split on "\n" only; a bare "\r" may sit inside a quoted field.
        with path.open("r", encoding="utf-8", errors="replace", newline="\n") as f:
            yield from f

    return _open


class RecordReader:
    """Restartable record stream: every iteration starts again from the header."""

    def __init__(
        self,
        source: Path | LineSource,
        *,
        postcode_index: int,
        logger: logging.Logger | None = None,
    ) -> None:
        self.source = file_lines(source) if isinstance(source, Path) else source
        self.postcode_index = postcode_index
        self.logger = logger

    def __iter__(self) -> Iterator[RawRecord]:
        return iter_records(self.source(), postcode_index=self.postcode_index, logger=self.logger)
