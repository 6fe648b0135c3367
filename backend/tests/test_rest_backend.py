"""Tests for the REST gateway client, against a mocked transport."""

import json
from datetime import date
import httpx
import pytest
from app.auth import Role
from app.exceptions import BackendError
from app.services.data_backend import eq, neq, gte, in_
from app.services.rest_backend import RestDataBackend, build_query_params, parse_content_range


def make_backend(handler):
    return RestDataBackend(
        base_url="https://project.example.co",
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
    )


def test_query_params_encode_filters_groups_and_ordering():
    params = build_query_params(
        [eq("doctor_id", "d-1"), neq("status", "cancelled"), gte("date", date(2024, 3, 1))],
        any_of=[eq("user_id", "u-1"), eq("email", "a,b@example.com")],
        columns=["patient_id", "date"],
        order_by="date",
        descending=True,
        limit=6,
    )

    assert params == [
        ("select", "patient_id,date"),
        ("doctor_id", "eq.d-1"),
        ("status", "neq.cancelled"),
        ("date", "gte.2024-03-01"),
        ("or", '(user_id.eq.u-1,email.eq."a,b@example.com")'),
        ("order", "date.desc"),
        ("limit", "6"),
    ]


def test_in_filter_lists_values():
    assert build_query_params([in_("id", ["a", "b c"])])[1] == ("id", 'in.(a,"b c")')


def test_content_range_parsing():
    assert parse_content_range("0-24/3573") == 3573
    assert parse_content_range("*/0") == 0
    assert parse_content_range(None) == 0


async def test_select_sends_keys_and_returns_rows():
    seen = {}

    def handler(request):
        seen["url"] = request.url
        seen["headers"] = request.headers
        return httpx.Response(200, json=[{"id": "p-1", "email": "jane@example.com"}])

    backend = make_backend(handler)
    rows = await backend.select("patients", [eq("email", "jane@example.com")])

    assert rows == [{"id": "p-1", "email": "jane@example.com"}]
    assert seen["url"].path == "/rest/v1/patients"
    assert seen["url"].params["email"] == "eq.jane@example.com"
    assert seen["headers"]["apikey"] == "anon-key"
    assert seen["headers"]["authorization"] == "Bearer anon-key"


async def test_access_token_replaces_anon_bearer():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json=[])

    backend = make_backend(handler)
    backend.set_access_token("user-jwt")
    await backend.select("patients")

    assert seen["auth"] == "Bearer user-jwt"


async def test_count_reads_content_range():
    def handler(request):
        assert request.method == "HEAD"
        assert request.headers["prefer"] == "count=exact"
        return httpx.Response(200, headers={"Content-Range": "0-0/42"})

    assert await make_backend(handler).count("appointments", [eq("status", "pending")]) == 42


async def test_insert_returns_representation():
    def handler(request):
        assert request.method == "POST"
        assert request.headers["prefer"] == "return=representation"
        body = json.loads(request.content)
        return httpx.Response(201, json=[{"id": "new-id", **body}])

    row = await make_backend(handler).insert("patients", {"name": "Jane", "date_of_birth": date(1990, 1, 1)})

    assert row == {"id": "new-id", "name": "Jane", "date_of_birth": "1990-01-01"}


async def test_delete_counts_removed_rows():
    def handler(request):
        assert request.method == "DELETE"
        assert request.url.params["id"] == "eq.p-1"
        return httpx.Response(200, json=[{"id": "p-1"}])

    assert await make_backend(handler).delete("patients", [eq("id", "p-1")]) == 1


async def test_delete_without_filters_is_refused():
    backend = make_backend(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(BackendError):
        await backend.delete("patients", [])


async def test_credential_check_calls_role_procedure():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"id": "d-1", "email": "house@example.com", "name": "Dr. House"}])

    record = await make_backend(handler).verify_credentials(Role.DOCTOR, "house@example.com", "vicodin1")

    assert record["id"] == "d-1"
    assert seen["path"] == "/rest/v1/rpc/doctor_login"
    assert seen["body"] == {"p_email": "house@example.com", "p_password": "vicodin1"}


async def test_credential_check_without_match_returns_none():
    backend = make_backend(lambda request: httpx.Response(200, json=[]))

    assert await backend.verify_credentials(Role.ADMIN, "x@example.com", "nope") is None


async def test_http_error_becomes_backend_error():
    backend = make_backend(lambda request: httpx.Response(500, json={"message": "boom"}))

    with pytest.raises(BackendError) as exc:
        await backend.select("patients")
    assert exc.value.details["status_code"] == 500


async def test_transport_error_becomes_backend_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendError):
        await make_backend(handler).count("patients")
