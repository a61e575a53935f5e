from __future__ import annotations

import logging

import pytest
import requests

from company_addresses.common.http import HttpClient, RetryConfig, RetryExhaustedError


class FakeResponse:
    def __init__(self, status_code: int, payload=None, raises_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._raises_json = raises_json

    def json(self):
        if self._raises_json:
            raise ValueError("bad json")
        return self._payload


def _scripted(responses):
    calls = []

    def _request(**kwargs):
        calls.append(kwargs)
        item = responses[min(len(calls), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    return _request, calls


def test_post_form_json_success(monkeypatch):
    client = HttpClient(sleep=lambda _s: None)
    request, calls = _scripted([FakeResponse(200, {"paon": "12"})])
    monkeypatch.setattr(client.session, "request", request)

    payload = client.post_form_json("https://example.com/address", data={"address": "12 High St"})

    assert payload == {"paon": "12"}
    assert len(calls) == 1
    assert calls[0]["method"] == "POST"
    assert calls[0]["data"] == {"address": "12 High St"}
    assert calls[0]["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    assert calls[0]["timeout"] == (20.0, 120.0)


def test_rejected_status_is_parsed_not_retried(monkeypatch):
    sleeps: list[float] = []
    client = HttpClient(sleep=sleeps.append)
    request, calls = _scripted([FakeResponse(400, {"error": "Address could not be parsed"})])
    monkeypatch.setattr(client.session, "request", request)

    payload = client.post_form_json("https://example.com/address", data={"address": "nowhere"})

    assert payload == {"error": "Address could not be parsed"}
    assert len(calls) == 1
    assert sleeps == []


def test_always_failing_service_gets_five_attempts_with_linear_backoff(monkeypatch, caplog):
    sleeps: list[float] = []
    client = HttpClient(sleep=sleeps.append, logger=logging.getLogger("test.http.retry"))
    request, calls = _scripted([FakeResponse(503, {"x": 1})])
    monkeypatch.setattr(client.session, "request", request)

    with caplog.at_level(logging.INFO, logger="test.http.retry"):
        with pytest.raises(RetryExhaustedError) as excinfo:
            client.post_form_json("https://example.com/address", data={"address": "a"}, context="address 'a'")

    assert len(calls) == 5
    assert sleeps == [5, 10, 15, 20]
    assert excinfo.value.attempts == 5
    events = [getattr(record, "event", None) for record in caplog.records]
    assert events.count("REQUEST_FAIL") == 5
    assert events.count("RETRY_WAIT") == 4
    assert events.count("GIVE_UP") == 1
    assert events[-1] == "GIVE_UP"


def test_transport_error_and_bad_json_are_retried_until_success(monkeypatch):
    sleeps: list[float] = []
    client = HttpClient(sleep=sleeps.append)
    request, calls = _scripted(
        [
            requests.ConnectionError("connection reset"),
            FakeResponse(200, raises_json=True),
            FakeResponse(200, {"paon": "1"}),
        ]
    )
    monkeypatch.setattr(client.session, "request", request)

    payload = client.post_form_json("https://example.com/address", data={"address": "a"})

    assert payload == {"paon": "1"}
    assert len(calls) == 3
    assert sleeps == [5, 10]


def test_retry_budget_comes_from_config(monkeypatch):
    sleeps: list[float] = []
    client = HttpClient(retry=RetryConfig(max_attempts=2, backoff_seconds=1.5), sleep=sleeps.append)
    request, calls = _scripted([FakeResponse(500)])
    monkeypatch.setattr(client.session, "request", request)

    with pytest.raises(RetryExhaustedError):
        client.post_form_json("https://example.com/address", data={"address": "a"})

    assert len(calls) == 2
    assert sleeps == [1.5]
