"""Discovery, download and unpacking of the Companies House data archive."""

from __future__ import annotations

import io
import logging
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Iterator
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from company_addresses.common.constants import USER_AGENT
from company_addresses.common.errors import ArchiveError
from company_addresses.common.fs import ensure_dir
from company_addresses.common.http import HttpClient, HttpRequestError, TimeoutConfig
from company_addresses.common.logging import log_event
from company_addresses.common.time_utils import utc_now
from company_addresses.pipeline.reader import LineSource, file_lines


def parse_archive_links(html: str, base_url: str) -> list[str]:
    soup = BeautifulSoup(html, "lxml")
    first_list = soup.find("ul")
    if first_list is None:
        return []
    links: list[str] = []
    for item in first_list.find_all("li"):
        anchor = item.find("a", href=True)
        if anchor is None:
            continue
        links.append(urljoin(base_url, anchor["href"]))
    return links


def discover_archive_links(client: HttpClient, index_url: str) -> list[str]:
    try:
        html = client.get_text(index_url)
    except HttpRequestError as exc:
        raise ArchiveError(f"Could not fetch archive index {index_url}: {exc}") from exc
    return parse_archive_links(html, index_url)


def select_archive_link(links: list[str], index: int) -> str:
    try:
        return links[index]
    except IndexError:
        raise ArchiveError(f"No archive at position {index}; index lists {len(links)}") from None


def _download_filename(url: str) -> str:
    basename = Path(urlparse(url).path).name
    return basename or "companies_house_archive.zip"


def download_archive(
    url: str,
    target_dir: Path,
    *,
    session: requests.Session | None = None,
    timeout: TimeoutConfig | None = None,
    logger: logging.Logger | None = None,
) -> tuple[Path, datetime]:
    log = logger or logging.getLogger(__name__)
    req_timeout = timeout or TimeoutConfig()
    ensure_dir(target_dir)
    target_path = target_dir / _download_filename(url)
    downloaded_at = utc_now()
    log_event(log, f"Downloading {target_path.name}", stage="download", source=url, event="DOWNLOAD", status="ok")

    getter = session.get if session is not None else requests.get
    try:
        response = getter(
            url,
            headers={"User-Agent": USER_AGENT, "Accept": "*/*"},
            timeout=(req_timeout.connect, req_timeout.read),
            stream=True,
        )
        response.raise_for_status()
        with target_path.open("wb") as f:
            for chunk in response.iter_content(chunk_size=1024 * 128):
                if chunk:
                    f.write(chunk)
    except requests.RequestException as exc:
        raise ArchiveError(f"Download of {url} failed: {exc}") from exc
    return target_path, downloaded_at


def _zip_member_lines(path: Path, name: str) -> LineSource:
    def _open() -> Iterator[str]:
        with zipfile.ZipFile(path) as archive, archive.open(name) as raw:
            yield from io.TextIOWrapper(raw, encoding="utf-8", errors="replace", newline="\n")

    return _open


def iter_archive_members(path: Path, *, logger: logging.Logger | None = None) -> Iterator[tuple[str, LineSource]]:
    """Yield ``(member name, line source)`` for each CSV inside ``path``.

    A bare CSV file is treated as a single-member archive.
    """
    log = logger or logging.getLogger(__name__)
    if not zipfile.is_zipfile(path):
        yield path.name, file_lines(path)
        return

    with zipfile.ZipFile(path) as archive:
        names = [info.filename for info in archive.infolist() if not info.is_dir()]
    for name in names:
        if not name.lower().endswith(".csv"):
            log_event(
                log,
                f"Skipping non-CSV member {name}",
                level=logging.WARNING,
                stage="extract",
                source=name,
                event="SKIP_MEMBER",
                status="skipped",
            )
            continue
        log_event(log, f"Extracting {name}", stage="extract", source=name, event="EXTRACT", status="ok")
        yield name, _zip_member_lines(path, name)
