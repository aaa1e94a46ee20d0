"""Tests for the httpx backend client, using httpx.MockTransport."""

import json

import httpx
import pytest

from orderbot.core.errors import BackendAuthError, BackendError
from orderbot.core.lookup import Choice
from orderbot.services.backend_client import BackendClient


def make_client(handler) -> BackendClient:
    return BackendClient(
        "user-token",
        base_url="https://backend.test",
        anon_key="anon",
        transport=httpx.MockTransport(handler),
    )


async def test_sends_auth_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, json={"id": "sup-1"})

    client = make_client(handler)
    assert await client.get_user() == "sup-1"
    assert seen["apikey"] == "anon"
    assert seen["authorization"] == "Bearer user-token"
    await client.aclose()


async def test_get_user_without_id_is_auth_error():
    client = make_client(lambda request: httpx.Response(200, json={}))
    with pytest.raises(BackendAuthError):
        await client.get_user()


async def test_list_leads_maps_rows():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/v1/leads"
        assert request.url.params["supplier_id"] == "eq.sup-1"
        assert request.url.params["order"] == "created_at.desc"
        return httpx.Response(200, json=[
            {"id": "l1", "name": "Anna", "contact_email": "a@x.de", "contact_phone": None,
             "status": "qualified", "client_id": "c1"},
            {"id": "l2", "name": None, "contact_email": None, "contact_phone": "0170",
             "status": None, "client_id": None},
        ])

    leads = await make_client(handler).list_leads("sup-1")

    assert [lead.id for lead in leads] == ["l1", "l2"]
    assert leads[0].email == "a@x.de" and leads[0].has_client
    assert leads[1].label == "No name"
    assert leads[1].status == "new"


async def test_client_projects_calls_rpc():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/rpc/supplier_client_projects"
        assert json.loads(request.content) == {"p_client_id": "c1"}
        return httpx.Response(200, json=[{"id": "p1", "title": "Kitchen"}])

    assert await make_client(handler).client_projects("c1") == [Choice(id="p1", label="Kitchen")]


async def test_create_order_bundle_returns_order_id():
    body = {}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/functions/v1/create-order-bundle"
        body.update(json.loads(request.content))
        return httpx.Response(200, json={"order_id": "o-42"})

    order_id = await make_client(handler).create_order_bundle({"supplier_id": "sup-1"})

    assert order_id == "o-42"
    assert body == {"supplier_id": "sup-1"}


async def test_error_body_with_2xx_is_failure():
    client = make_client(lambda request: httpx.Response(
        200, json={"error": "duplicate order", "details": "order already exists"},
    ))
    with pytest.raises(BackendError) as exc:
        await client.create_order_bundle({})
    assert exc.value.user_message == "duplicate order: order already exists"


async def test_error_status_uses_message_field():
    client = make_client(lambda request: httpx.Response(400, json={"message": "bad title"}))
    with pytest.raises(BackendError) as exc:
        await client.create_order_bundle({})
    assert exc.value.status_code == 400
    assert exc.value.user_message == "bad title"


async def test_missing_order_id_is_failure():
    client = make_client(lambda request: httpx.Response(200, json={"ok": True}))
    with pytest.raises(BackendError):
        await client.create_order_bundle({})


async def test_unauthorized_maps_to_auth_error():
    client = make_client(lambda request: httpx.Response(401, json={"message": "JWT expired"}))
    with pytest.raises(BackendAuthError):
        await client.list_leads("sup-1")


async def test_transport_failure_is_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendError) as exc:
        await make_client(handler).client_projects("c1")
    assert exc.value.message == "Backend is unreachable"


async def test_convert_lead_to_client():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/functions/v1/convert-lead-to-client"
        assert json.loads(request.content) == {"leadId": "l2"}
        return httpx.Response(200, json={"client_id": "c9"})

    assert await make_client(handler).convert_lead_to_client("l2") == "c9"
