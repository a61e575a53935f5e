"""HTTP client with timeouts and linear-backoff retries."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable

import requests
from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_incrementing

from company_addresses.common.constants import ACCEPTED_STATUS_CODES, USER_AGENT
from company_addresses.common.errors import StageError
from company_addresses.common.logging import log_event


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 5
    backoff_seconds: float = 5.0


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"


class RetryExhaustedError(HttpRequestError):
    error_code = "RETRY_EXHAUSTED"

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of a single request attempt; a missing payload means the attempt failed."""

    payload: dict[str, Any] | None = None
    failure: str | None = None

    @property
    def failed(self) -> bool:
        return self.payload is None


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.sleep = sleep
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, headers: dict[str, str] | None, accept: str = "application/json") -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": accept}
        if headers:
            out.update(headers)
        return out

    def _attempt_json(
        self,
        method: str,
        url: str,
        *,
        data: dict[str, Any] | None,
        headers: dict[str, str] | None,
        timeout: TimeoutConfig,
        accepted_statuses: frozenset[int],
    ) -> AttemptOutcome:
        try:
            response = self.session.request(
                method=method,
                url=url,
                data=data,
                headers=self._headers(headers),
                timeout=(timeout.connect, timeout.read),
            )
        except requests.RequestException as exc:
            return AttemptOutcome(failure=f"transport error: {exc.__class__.__name__}: {exc}")

        if response.status_code not in accepted_statuses:
            return AttemptOutcome(failure=f"unexpected HTTP status: {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            return AttemptOutcome(failure=f"invalid JSON payload from {url}")
        if not isinstance(payload, dict):
            return AttemptOutcome(failure=f"JSON payload from {url} is not an object")

        return AttemptOutcome(payload=payload)

    def request_json(
        self,
        method: str,
        url: str,
        *,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
        accepted_statuses: frozenset[int] = ACCEPTED_STATUS_CODES,
        context: str | None = None,
    ) -> dict[str, Any]:
        """Request a JSON object, retrying failed attempts with linearly growing waits.

        Attempts answered with one of ``accepted_statuses`` are returned as data
        whatever their status; everything else is retried until the attempt
        budget is spent, then ``RetryExhaustedError`` is raised.
        """
        req_timeout = timeout or self.timeout
        subject = context or url

        def _log_failed_attempt(retry_state: RetryCallState) -> None:
            outcome: AttemptOutcome = retry_state.outcome.result()
            log_event(
                self.logger,
                f"request for {subject} failed: {outcome.failure}",
                level=logging.WARNING,
                event="REQUEST_FAIL",
                status="retry",
                attempt=retry_state.attempt_number,
            )

        def _log_backoff(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep
            log_event(
                self.logger,
                f"retrying {subject} in {delay:g} seconds",
                event="RETRY_WAIT",
                status="retry",
                attempt=retry_state.attempt_number,
                delay_seconds=delay,
            )

        def _give_up(retry_state: RetryCallState) -> AttemptOutcome:
            log_event(
                self.logger,
                f"giving up on {subject}",
                level=logging.WARNING,
                event="GIVE_UP",
                status="error",
                attempt=retry_state.attempt_number,
                error_code=RetryExhaustedError.error_code,
            )
            return retry_state.outcome.result()

        retrying = Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_incrementing(start=self.retry.backoff_seconds, increment=self.retry.backoff_seconds),
            retry=retry_if_result(lambda outcome: outcome.failed),
            after=_log_failed_attempt,
            before_sleep=_log_backoff,
            retry_error_callback=_give_up,
            sleep=self.sleep,
        )
        outcome = retrying(
            self._attempt_json,
            method,
            url,
            data=data,
            headers=headers,
            timeout=req_timeout,
            accepted_statuses=accepted_statuses,
        )
        if outcome.failed:
            raise RetryExhaustedError(
                f"Gave up on {subject} after {self.retry.max_attempts} attempts: {outcome.failure}",
                attempts=self.retry.max_attempts,
            )
        return outcome.payload

    def post_form_json(
        self,
        url: str,
        *,
        data: dict[str, Any],
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
        context: str | None = None,
    ) -> dict[str, Any]:
        merged = {"Content-Type": "application/x-www-form-urlencoded"}
        if headers:
            merged.update(headers)
        return self.request_json(
            "POST",
            url,
            data=data,
            headers=merged,
            timeout=timeout,
            context=context,
        )

    def get_text(self, url: str, *, timeout: TimeoutConfig | None = None) -> str:
        req_timeout = timeout or self.timeout
        try:
            response = self.session.get(
                url,
                headers=self._headers(None, accept="text/html,*/*"),
                timeout=(req_timeout.connect, req_timeout.read),
            )
        except requests.RequestException as exc:
            raise HttpRequestError(f"Request to {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise HttpRequestError(f"HTTP status: {response.status_code}")
        return response.text
