"""Ticket submission to the support API.

Two interchangeable dispatchers share one contract: ``submit`` performs a
single attempt and returns a SubmissionResult, or raises APIError. There is
no retry; the caller decides whether to invoke again.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx
import pydantic

from helpline.config import Config
from helpline.errors import APIError
from helpline.schemas import SubmissionResult

logger = logging.getLogger(__name__)

MOCK_PORTAL_URL = "https://mock-portal.example.com"


class Dispatcher(ABC):
    @abstractmethod
    async def submit(self, payload: dict[str, Any], session_id: str) -> SubmissionResult:
        """Submit payload once and normalize the outcome."""


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def parse_submission_response(data: Any) -> SubmissionResult:
    """Normalize the API's success body.

    Accepts ``ticketId`` or ``id`` at the top level, or a nested ``ticket``
    object with ``id``/``status``/``priority``.
    """
    if not isinstance(data, dict):
        raise APIError("API response is not a JSON object", body=data)

    ticket = data.get("ticket")
    if not isinstance(ticket, dict):
        ticket = {}

    ticket_id = _first_present(data.get("ticketId"), data.get("id"), ticket.get("id"))
    if ticket_id is None or ticket_id == "":
        raise APIError("API response missing ticket id", body=data)

    status = _first_present(data.get("status"), ticket.get("status"))
    try:
        return SubmissionResult(
            ticket_id=str(ticket_id),
            status="submitted" if status is None else str(status),
            priority=_first_present(data.get("priority"), ticket.get("priority")),
            ticket_url=_first_present(data.get("ticketUrl"), ticket.get("url")),
            message=data.get("message"),
        )
    except pydantic.ValidationError as e:
        raise APIError("API response has an unexpected shape", body=data) from e


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class MockDispatcher(Dispatcher):
    """Fakes a successful submission after a short delay. No network access."""

    def __init__(self, delay: float = 0.5, portal_url: str = MOCK_PORTAL_URL) -> None:
        self._delay = delay
        self._portal_url = portal_url.rstrip("/")

    async def submit(self, payload: dict[str, Any], session_id: str) -> SubmissionResult:
        size = len(json.dumps(payload, default=str))
        logger.info(f"MOCK MODE: simulating submission for session {session_id} ({size} bytes)")

        await asyncio.sleep(self._delay)

        ticket_id = f"mock-{int(time.time() * 1000)}"
        priority = payload.get("priority")
        result = SubmissionResult(
            ticket_id=ticket_id,
            status="mock_success",
            priority=priority if isinstance(priority, str) else None,
            ticket_url=f"{self._portal_url}/tickets/{ticket_id}",
            message="Mock help request processed successfully",
        )
        logger.info(f"MOCK MODE: session {session_id} -> ticket {ticket_id}")
        return result


class HttpDispatcher(Dispatcher):
    """POSTs the payload as JSON with a credential header."""

    def __init__(
        self,
        endpoint: str,
        secret: str,
        auth_scheme: str = "bearer",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._secret = secret
        self._auth_scheme = auth_scheme
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth_scheme == "service-key":
            headers["x-service-key"] = self._secret
        else:
            headers["Authorization"] = f"Bearer {self._secret}"
        return headers

    async def submit(self, payload: dict[str, Any], session_id: str) -> SubmissionResult:
        logger.info(f"Sending help request for session {session_id} to {self._endpoint}")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._endpoint, json=payload, headers=self._headers()
                )
        except httpx.RequestError as e:
            raise APIError(f"Could not reach support API at {self._endpoint}: {e}") from e

        if not response.is_success:
            raise APIError(
                f"API request failed with status {response.status_code}: "
                f"{response.reason_phrase}",
                status_code=response.status_code,
                body=_error_body(response),
            )

        try:
            data = response.json()
        except ValueError as e:
            raise APIError(
                "API returned a response that is not valid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from e

        result = parse_submission_response(data)
        logger.info(f"Session {session_id} submitted as ticket {result.ticket_id} ({result.status})")
        return result


def create_dispatcher(config: Config) -> Dispatcher:
    if config.use_mock_api:
        return MockDispatcher(delay=config.mock_delay)
    return HttpDispatcher(
        endpoint=config.api_endpoint,
        secret=config.api_secret,
        auth_scheme=config.auth_scheme,
        timeout=config.timeout,
    )
