from __future__ import annotations

import logging
import zipfile
from pathlib import Path

import pytest
import requests

from company_addresses.common.errors import ArchiveError
from company_addresses.common.http import HttpRequestError, TimeoutConfig
from company_addresses.harvest.archive import (
    discover_archive_links,
    download_archive,
    iter_archive_members,
    parse_archive_links,
    select_archive_link,
)

INDEX_HTML = """
<html><body>
<ul>
  <li><a href="BasicCompanyData-2015-03-01-part1_5.zip">Part 1</a></li>
  <li><a href="BasicCompanyData-2015-03-01-part2_5.zip">Part 2</a></li>
  <li>No link here</li>
</ul>
<ul><li><a href="other.zip">Other list</a></li></ul>
</body></html>
"""


class FakeIndexClient:
    def __init__(self, html: str | None = None):
        self.html = html

    def get_text(self, url: str, **_kwargs):
        if self.html is None:
            raise HttpRequestError("HTTP status: 503")
        return self.html


def test_parse_archive_links_reads_first_list_only():
    links = parse_archive_links(INDEX_HTML, "http://download.companieshouse.gov.uk/en_output.html")
    assert links == [
        "http://download.companieshouse.gov.uk/BasicCompanyData-2015-03-01-part1_5.zip",
        "http://download.companieshouse.gov.uk/BasicCompanyData-2015-03-01-part2_5.zip",
    ]


def test_discover_and_select_archive_link():
    links = discover_archive_links(FakeIndexClient(INDEX_HTML), "http://download.test/en_output.html")
    assert select_archive_link(links, 1).endswith("part2_5.zip")
    with pytest.raises(ArchiveError):
        select_archive_link(links, 5)


def test_discover_wraps_http_failures():
    with pytest.raises(ArchiveError):
        discover_archive_links(FakeIndexClient(None), "http://download.test/en_output.html")


def test_iter_archive_members_reads_csv_members(tmp_path: Path, caplog):
    archive_path = tmp_path / "data.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("part1.csv", "header\nrow1\n")
        archive.writestr("README.txt", "ignored")

    with caplog.at_level(logging.WARNING):
        members = list(iter_archive_members(archive_path))

    assert [name for name, _ in members] == ["part1.csv"]
    skipped = [r for r in caplog.records if getattr(r, "event", None) == "SKIP_MEMBER"]
    assert [r.source for r in skipped] == ["README.txt"]
    _, source = members[0]
    assert list(source()) == ["header\n", "row1\n"]
    assert list(source()) == ["header\n", "row1\n"]


def test_iter_archive_members_treats_plain_csv_as_single_member(tmp_path: Path):
    path = tmp_path / "plain.csv"
    path.write_text("header\nrow1\n", encoding="utf-8")

    members = list(iter_archive_members(path))

    assert [name for name, _ in members] == ["plain.csv"]


class FakeDownloadResponse:
    def __init__(self, status_code: int, body: bytes = b""):
        self.status_code = status_code
        self.body = body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def iter_content(self, chunk_size: int):
        yield self.body


class FakeSession:
    def __init__(self, response: FakeDownloadResponse):
        self.response = response
        self.calls: list[tuple[str, dict]] = []

    def get(self, url: str, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


def test_download_archive_streams_to_disk(tmp_path: Path):
    session = FakeSession(FakeDownloadResponse(200, b"PK-bytes"))

    path, downloaded_at = download_archive("http://download.test/part1.zip", tmp_path / "dl", session=session)

    assert path == tmp_path / "dl" / "part1.zip"
    assert path.read_bytes() == b"PK-bytes"
    assert downloaded_at.tzinfo is not None


def test_download_archive_failure_raises_archive_error(tmp_path: Path):
    session = FakeSession(FakeDownloadResponse(404))
    with pytest.raises(ArchiveError):
        download_archive("http://download.test/part1.zip", tmp_path, session=session)


def test_download_archive_uses_configured_timeout(tmp_path: Path):
    session = FakeSession(FakeDownloadResponse(200, b"PK"))

    download_archive(
        "http://download.test/part1.zip",
        tmp_path,
        session=session,
        timeout=TimeoutConfig(connect=5, read=60),
    )

    assert session.calls[0][1]["timeout"] == (5, 60)
    assert session.calls[0][1]["stream"] is True


def test_zip_member_keeps_carriage_return_inside_quoted_field(tmp_path: Path):
    archive_path = tmp_path / "data.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("part1.csv", 'header\n"1 High\rSt",AB1 2CD\n')

    [(_, source)] = list(iter_archive_members(archive_path))

    assert list(source()) == ["header\n", '"1 High\rSt",AB1 2CD\n']
