"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for failures of an outer stage (download, extraction, HTTP)."""

    error_code = "STAGE_ERROR"


class ArchiveError(StageError):
    """Raised when the source archive cannot be discovered or fetched."""

    error_code = "ARCHIVE_ERROR"
