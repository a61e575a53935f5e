"""Application constants."""

USER_AGENT = "company-addresses/0.1 (+open addresses; contact: configured-email)"

SOURCE_TYPE = "Source"
PROVENANCE_PARTS = ("street", "locality", "town", "postcode")

ACCEPTED_STATUS_CODES = frozenset({200, 400})

EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "attempt",
    "delay_seconds",
    "line_number",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
