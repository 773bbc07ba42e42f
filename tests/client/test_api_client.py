"""Calculations API Client: request shapes and error mapping over MockTransport.

Invariants:
    - The bearer token is attached once known
    - Non-2xx responses raise the matching typed CalcSyncError
    - Transport failures and 5xx become TransientNetworkError
"""

import json

import httpx
import pytest

from calcsync.client.api_client import CalculationsApiClient
from calcsync.core.domain_types import Operation, SortKey
from calcsync.core.errors import (
    DivisionByZeroError, ForbiddenError, RecordNotFoundError,
    TransientNetworkError, UnauthenticatedError, ValidationError,
)


def _client(handler, **kwargs) -> CalculationsApiClient:
    return CalculationsApiClient(
        "http://api.test", transport=httpx.MockTransport(handler), **kwargs,
    )


async def test_login_stores_token_and_sends_it():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        if request.url.path == "/api/v1/auth/login":
            return httpx.Response(200, json={"access_token": "tok", "token_type": "bearer"})
        return httpx.Response(200, json={"totalCount": 0, "page": 1, "pageSize": 10, "data": []})

    async with _client(handler) as api:
        token = await api.login("alice", "password123")
        await api.list_page()

    assert token == "tok"
    assert json.loads(seen[0].content) == {"username": "alice", "password": "password123"}
    assert "authorization" not in seen[0].headers
    assert seen[1].headers["authorization"] == "Bearer tok"


async def test_create_posts_operation_name():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"result": 15.0, "operation": "Add"})

    async with _client(handler, token="t") as api:
        body = await api.create(10, 5, "add")

    assert body == {"result": 15.0, "operation": "Add"}
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/v1/calculations"
    assert json.loads(seen[0].content) == {"left": 10, "right": 5, "operation": "Add"}


async def test_legacy_codes_post_operand():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"result": 2.0, "operation": "Divide"})

    async with _client(handler, legacy_codes=True) as api:
        await api.create(6, 3, Operation.DIVIDE)

    assert seen == [{"left": 6, "right": 3, "operand": 3}]


async def test_list_page_query_params():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"totalCount": 0, "page": 2, "pageSize": 5, "data": []})

    async with _client(handler) as api:
        await api.list_page(
            page=2, page_size=5, sort_by=SortKey.RESULT,
            operation="multiply", min_result=1, max_result=9,
        )

    params = dict(seen[0].url.params)
    assert params == {
        "page": "2", "pageSize": "5", "sortBy": "result",
        "operation": "Multiply", "minResult": "1", "maxResult": "9",
    }


async def test_replace_and_deactivate_paths():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path))
        if request.method == "PATCH":
            return httpx.Response(200, json={"message": "Calculation deactivated", "id": "r1"})
        return httpx.Response(200, json={"result": 1.0, "operation": "Subtract"})

    async with _client(handler) as api:
        await api.replace("r1", 3, 2, "Subtract")
        await api.deactivate("r1")

    assert seen == [
        ("PUT", "/api/v1/calculations/r1"),
        ("PATCH", "/api/v1/calculations/r1/deactivate"),
    ]


async def test_division_by_zero_maps_to_typed_error():
    def handler(request):
        return httpx.Response(400, json=DivisionByZeroError().to_response())

    async with _client(handler) as api:
        with pytest.raises(DivisionByZeroError) as exc:
            await api.create(1, 0, "Divide")
    assert exc.value.fields == {"right": ["Division by zero is not allowed."]}


@pytest.mark.parametrize("status,error", [
    (401, UnauthenticatedError),
    (403, ForbiddenError),
    (404, RecordNotFoundError),
])
async def test_status_mapping(status, error):
    def handler(request):
        return httpx.Response(status, json={"error": {"message": "nope"}})

    async with _client(handler) as api:
        with pytest.raises(error):
            await api.deactivate("r1")


async def test_validation_fields_survive():
    def handler(request):
        return httpx.Response(400, json={"error": {
            "code": "VALIDATION_ERROR", "message": "bad",
            "fields": {"left": ["Input should be a valid number"]},
        }})

    async with _client(handler) as api:
        with pytest.raises(ValidationError) as exc:
            await api.create(1, 2, "Add")
    assert exc.value.fields == {"left": ["Input should be a valid number"]}


async def test_server_error_is_transient():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    async with _client(handler) as api:
        with pytest.raises(TransientNetworkError) as exc:
            await api.list_page()
    assert exc.value.status_code == 502


async def test_connect_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as api:
        with pytest.raises(TransientNetworkError):
            await api.list_page()


async def test_timeout_is_transient():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    async with _client(handler) as api:
        with pytest.raises(TransientNetworkError) as exc:
            await api.list_page()
    assert "timed out" in exc.value.message
