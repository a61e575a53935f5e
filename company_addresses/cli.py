"""CLI entrypoint for the Companies House address pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from company_addresses.common.config_loader import PipelineConfig, load_config
from company_addresses.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from company_addresses.common.errors import PipelineError
from company_addresses.common.http import HttpClient
from company_addresses.common.ids import generate_run_id
from company_addresses.common.logging import build_logger, log_event
from company_addresses.common.models import RunMetadata
from company_addresses.common.revision import current_revision
from company_addresses.common.time_utils import parse_timestamp
from company_addresses.harvest.archive import (
    discover_archive_links,
    download_archive,
    iter_archive_members,
    select_archive_link,
)
from company_addresses.pipeline.emit import OutputEmitter
from company_addresses.pipeline.process import run_pipeline
from company_addresses.pipeline.reader import RecordReader
from company_addresses.pipeline.resolve import AddressResolver


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--log-dir", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--revision", default=None, help="source revision cited in provenance (default: git HEAD)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser("process", help="process a local CSV file or zip archive")
    process.add_argument("path")
    process.add_argument("--origin-url", required=True)
    process.add_argument("--downloaded-at", default=None, help="ISO timestamp (default: now)")

    fetch = subparsers.add_parser("fetch", help="download an archive from the index page and process it")
    fetch.add_argument("--index", type=int, default=0, help="position of the archive on the index page")
    fetch.add_argument("--download-dir", default=None)

    return parser.parse_args(argv)


def process_archive(
    path: Path,
    run: RunMetadata,
    cfg: PipelineConfig,
    client: HttpClient,
    logger: logging.Logger,
    emitter: OutputEmitter | None = None,
) -> bool:
    """Process every member of ``path``; returns True when the run was only partially successful."""
    emitter = emitter or OutputEmitter()
    resolver = AddressResolver(
        client,
        endpoint=cfg.endpoint,
        street_indices=cfg.fields.street_lines,
        postcode_index=cfg.fields.postcode,
        timeout=cfg.timeout,
        logger=logger,
    )

    had_partial_failure = False
    for name, line_source in iter_archive_members(path, logger=logger):
        log_event(logger, f"Parsing {name}", stage="process", source=name, event="PARSE_START", status="ok")
        reader = RecordReader(line_source, postcode_index=cfg.fields.postcode, logger=logger)
        try:
            stats = run_pipeline(
                reader,
                resolver=resolver,
                emitter=emitter,
                run=run,
                provenance_config=cfg.provenance,
                valid_at_indices=cfg.fields.valid_at,
                logger=logger,
                source_name=name,
            )
        except (OSError, UnicodeError) as exc:
            had_partial_failure = True
            log_event(
                logger,
                f"failed reading {name}: {exc}",
                level=logging.ERROR,
                stage="process",
                source=name,
                event="PARSE_FAIL",
                status="error",
                error_code="READ_ERROR",
            )
            continue
        log_event(
            logger,
            f"finished {name}",
            stage="process",
            source=name,
            event="PARSE_END",
            status="ok",
            rows_in=stats.rows_in,
            rows_out=stats.emitted,
        )
    return had_partial_failure


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    logger = build_logger(run_id, log_dir=Path(args.log_dir) if args.log_dir else None, level=args.log_level)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    try:
        cfg = load_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
    except PipelineError as exc:
        log_event(logger, str(exc), level=logging.ERROR, run_id=run_id, event="CONFIG_FAIL", status="error", error_code=exc.error_code)
        return EXIT_HARD_FAIL

    revision = args.revision or current_revision()

    with HttpClient(timeout=cfg.timeout, retry=cfg.retry, logger=logger) as client:
        try:
            if args.command == "fetch":
                links = discover_archive_links(client, cfg.index_url)
                url = select_archive_link(links, args.index)
                download_dir = Path(args.download_dir) if args.download_dir else cfg.download_dir
                path, downloaded_at = download_archive(
                    url,
                    download_dir,
                    session=client.session,
                    timeout=cfg.timeout,
                    logger=logger,
                )
            else:
                path = Path(args.path)
                url = args.origin_url
                downloaded_at = parse_timestamp(args.downloaded_at)
                if not path.exists():
                    log_event(logger, f"input not found: {path}", level=logging.ERROR, run_id=run_id, event="INPUT_MISSING", status="error")
                    return EXIT_HARD_FAIL
        except PipelineError as exc:
            log_event(logger, str(exc), level=logging.ERROR, run_id=run_id, stage="download", event="STAGE_FAIL", status="error", error_code=exc.error_code)
            return EXIT_HARD_FAIL

        run = RunMetadata(origin_url=url, downloaded_at=downloaded_at, revision=revision)
        had_partial_failure = process_archive(path, run, cfg, client, logger)

    if had_partial_failure:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
