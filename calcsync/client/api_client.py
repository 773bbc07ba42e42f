"""Calculations API Client: typed async access to the calcsync HTTP API.

Invariants:
    - Every non-2xx response is raised as a CalcSyncError rebuilt by from_response()
    - Transport failures and timeouts become TransientNetworkError (retryable)
    - asyncio.CancelledError is never caught: cancelling a call aborts the request
    - The bearer token, once set (login() or constructor), is sent on every request

Design Decisions:
    - One long-lived httpx.AsyncClient per instance (connection reuse); the
      transport is injectable so tests drive it with httpx.MockTransport
    - legacy_codes=True posts {"operand": <int>} like the first client generation;
      the server accepts both shapes
    - Methods return the decoded JSON dicts; the view keeps them as-is
"""

import logging
from typing import Any

import httpx

from calcsync.core.domain_types import LEGACY_OPERATION_CODES, Operation, SortKey
from calcsync.core.errors import TransientNetworkError, from_response
from calcsync.core.evaluate import parse_operation

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DEFAULT_TIMEOUT = 5.0

_CODE_FOR = {op: code for code, op in LEGACY_OPERATION_CODES.items()}


class CalculationsApiClient:
    """Thin async wrapper over the calculations and auth endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        legacy_codes: bool = False,
    ):
        self.token = token
        self.legacy_codes = legacy_codes
        self.http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "CalculationsApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    # ─── Auth ───────────────────────────────────────────────────

    async def login(self, username: str, password: str) -> str:
        body = await self._request(
            "POST", "/auth/login",
            json={"username": username, "password": password},
        )
        self.token = body["access_token"]
        return self.token

    async def register(
        self, username: str, password: str, email: str | None = None,
    ) -> dict:
        payload: dict[str, Any] = {"username": username, "password": password}
        if email:
            payload["email"] = email
        return await self._request("POST", "/auth/register", json=payload)

    # ─── Calculations ───────────────────────────────────────────

    async def create(
        self, left: float, right: float, operation: Operation | str | int,
    ) -> dict:
        """POST a new calculation. Returns {result, operation}."""
        return await self._request(
            "POST", "/calculations",
            json=self._payload(left, right, operation),
        )

    async def list_page(
        self,
        page: int = 1,
        page_size: int = 10,
        sort_by: SortKey | None = None,
        operation: Operation | str | None = None,
        min_result: float | None = None,
        max_result: float | None = None,
    ) -> dict:
        """GET one page: {totalCount, page, pageSize, data}."""
        params: dict[str, Any] = {"page": page, "pageSize": page_size}
        if sort_by is not None:
            params["sortBy"] = SortKey(sort_by).value
        if operation is not None:
            params["operation"] = parse_operation(operation).value
        if min_result is not None:
            params["minResult"] = min_result
        if max_result is not None:
            params["maxResult"] = max_result
        return await self._request("GET", "/calculations", params=params)

    async def replace(
        self, record_id: str, left: float, right: float,
        operation: Operation | str | int,
    ) -> dict:
        return await self._request(
            "PUT", f"/calculations/{record_id}",
            json=self._payload(left, right, operation),
        )

    async def deactivate(self, record_id: str) -> dict:
        return await self._request("PATCH", f"/calculations/{record_id}/deactivate")

    # ─── Internals ──────────────────────────────────────────────

    def _payload(
        self, left: float, right: float, operation: Operation | str | int,
    ) -> dict:
        op = parse_operation(operation)
        if self.legacy_codes:
            return {"left": left, "right": right, "operand": _CODE_FOR[op]}
        return {"left": left, "right": right, "operation": op.value}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{API_PREFIX}{path}"
        try:
            response = await self.http.request(
                method, url, headers=self.auth_headers(), **kwargs,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {url} timed out: {e}")
            raise TransientNetworkError(f"Request timed out: {method} {url}")
        except httpx.TransportError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransientNetworkError(f"Network error: {e}")

        if response.is_success:
            return response.json() if response.content else None
        try:
            body = response.json()
        except ValueError:
            body = None
        logger.warning(
            f"{method} {url} returned {response.status_code}",
            extra={"path": url},
        )
        raise from_response(response.status_code, body)
