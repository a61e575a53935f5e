"""JSON-lines output of resolved address records."""

from __future__ import annotations

import json
import sys
from typing import TextIO

from company_addresses.common.models import OutputRecord


def serialize_record(record: OutputRecord) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False)


class OutputEmitter:
    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def emit(self, record: OutputRecord) -> None:
        self.stream.write(serialize_record(record))
        self.stream.write("\n")
        self.stream.flush()
