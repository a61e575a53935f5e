"""Minimal strict schema for YAML config validation."""

from __future__ import annotations

from company_addresses.common.errors import ConfigError


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_index(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{ctx} must be a non-negative column index")


def _assert_index_list(value: object, ctx: str, length: int | None = None) -> None:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"{ctx} must be a non-empty list of column indices")
    if length is not None and len(value) != length:
        raise ConfigError(f"{ctx} must list exactly {length} column indices")
    for idx, item in enumerate(value):
        _assert_index(item, f"{ctx}[{idx}]")


def _assert_positive_number(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def validate_pipeline_config(cfg: object, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "pipeline config")
    top_required = {"source", "resolver", "fields", "provenance"}
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required, "pipeline config", allow_unknown)

    source = _assert_mapping(cfg["source"], "source")
    _assert_required_keys(source, {"index_url", "download_dir"}, "source")

    resolver = _assert_mapping(cfg["resolver"], "resolver")
    _assert_required_keys(resolver, {"endpoint", "timeout", "retry"}, "resolver")
    timeout = _assert_mapping(resolver["timeout"], "resolver.timeout")
    _assert_required_keys(timeout, {"connect", "read"}, "resolver.timeout")
    _assert_positive_number(timeout["connect"], "resolver.timeout.connect")
    _assert_positive_number(timeout["read"], "resolver.timeout.read")
    retry = _assert_mapping(resolver["retry"], "resolver.retry")
    _assert_required_keys(retry, {"max_attempts", "backoff_seconds"}, "resolver.retry")
    _assert_positive_number(retry["max_attempts"], "resolver.retry.max_attempts")
    _assert_positive_number(retry["backoff_seconds"], "resolver.retry.backoff_seconds")

    fields = _assert_mapping(cfg["fields"], "fields")
    _assert_required_keys(fields, {"street_lines", "postcode", "valid_at"}, "fields")
    _assert_index_list(fields["street_lines"], "fields.street_lines", length=3)
    _assert_index(fields["postcode"], "fields.postcode")
    _assert_index_list(fields["valid_at"], "fields.valid_at")

    provenance = _assert_mapping(cfg["provenance"], "provenance")
    _assert_required_keys(provenance, {"repository_url", "script_path"}, "provenance")

    return cfg
