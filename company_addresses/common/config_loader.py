"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from company_addresses.common.errors import ConfigError
from company_addresses.common.fs import read_yaml
from company_addresses.common.http import RetryConfig, TimeoutConfig
from company_addresses.common.schema import validate_pipeline_config

CONFIG_FILENAME = "companies_house.yml"


@dataclass(frozen=True)
class FieldLayout:
    street_lines: tuple[int, ...]
    postcode: int
    valid_at: tuple[int, ...]


@dataclass(frozen=True)
class ProvenanceConfig:
    repository_url: str
    script_path: str


@dataclass(frozen=True)
class PipelineConfig:
    index_url: str
    download_dir: Path
    endpoint: str
    timeout: TimeoutConfig
    retry: RetryConfig
    fields: FieldLayout
    provenance: ProvenanceConfig


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def build_pipeline_config(cfg: dict) -> PipelineConfig:
    resolver = cfg["resolver"]
    fields = cfg["fields"]
    return PipelineConfig(
        index_url=str(cfg["source"]["index_url"]),
        download_dir=Path(cfg["source"]["download_dir"]),
        endpoint=str(resolver["endpoint"]),
        timeout=TimeoutConfig(
            connect=float(resolver["timeout"]["connect"]),
            read=float(resolver["timeout"]["read"]),
        ),
        retry=RetryConfig(
            max_attempts=int(resolver["retry"]["max_attempts"]),
            backoff_seconds=float(resolver["retry"]["backoff_seconds"]),
        ),
        fields=FieldLayout(
            street_lines=tuple(int(i) for i in fields["street_lines"]),
            postcode=int(fields["postcode"]),
            valid_at=tuple(int(i) for i in fields["valid_at"]),
        ),
        provenance=ProvenanceConfig(
            repository_url=str(cfg["provenance"]["repository_url"]).rstrip("/"),
            script_path=str(cfg["provenance"]["script_path"]).lstrip("/"),
        ),
    )


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> PipelineConfig:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / CONFIG_FILENAME
    raw = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    cfg = validate_pipeline_config(raw, allow_unknown=allow_unknown)
    return build_pipeline_config(cfg)
