import json
import logging
from datetime import datetime, timezone

from company_addresses.common import revision
from company_addresses.common.ids import generate_run_id
from company_addresses.common.logging import JsonLineFormatter, build_logger, log_event
from company_addresses.common.time_utils import isoformat_utc, parse_timestamp


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")


def test_parse_timestamp_defaults_and_naive_values_are_utc():
    assert parse_timestamp("2015-03-01T09:30:00") == datetime(2015, 3, 1, 9, 30, tzinfo=timezone.utc)
    assert parse_timestamp(None).tzinfo is not None


def test_isoformat_utc_normalises_offsets():
    value = datetime.fromisoformat("2015-03-01T10:30:00+01:00")
    assert isoformat_utc(value) == "2015-03-01T09:30:00+00:00"


def test_json_line_formatter_has_stable_fields():
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "bad line", None, None)
    record.event = "BAD_LINE"
    record.line_number = 7

    payload = json.loads(JsonLineFormatter().format(record))

    assert payload["event"] == "BAD_LINE"
    assert payload["line_number"] == 7
    assert payload["attempt"] is None
    assert payload["message"] == "bad line"


def test_build_logger_writes_jsonl_file(tmp_path):
    logger = build_logger("run-test", log_dir=tmp_path, level="INFO")
    log_event(logger, "stage start", event="STAGE_START", status="ok")
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "run-test.log.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["event"] == "STAGE_START"
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_current_revision_without_git(monkeypatch):
    monkeypatch.setattr(revision.shutil, "which", lambda _name: None)
    assert revision.current_revision() is None


def test_current_revision_when_git_fails(monkeypatch, tmp_path):
    def fail(*_args, **_kwargs):
        raise revision.subprocess.CalledProcessError(128, "git")

    monkeypatch.setattr(revision.shutil, "which", lambda _name: "/usr/bin/git")
    monkeypatch.setattr(revision.subprocess, "run", fail)
    assert revision.current_revision(tmp_path) is None
