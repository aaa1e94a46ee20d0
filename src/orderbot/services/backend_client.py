"""
Async client for the hosted backend (auth, tables, RPCs, edge functions).

The backend owns all business rules: row-level security, the
create_order_bundle transaction, lead-to-client conversion. This client
only shapes requests and turns failures into BackendError so callers can
handle one exception type.

Endpoints used (Supabase-style):
  GET  /auth/v1/user                           — who am I
  GET  /rest/v1/leads                          — supplier's leads
  POST /rest/v1/rpc/supplier_client_projects   — projects of a client
  POST /functions/v1/create-order-bundle       — atomic order commit
  POST /functions/v1/convert-lead-to-client    — link a lead to a client
"""

import logging
from typing import Any, Protocol

import httpx

from orderbot.config import settings
from orderbot.core.errors import BackendAuthError, BackendError
from orderbot.core.lookup import Choice, LeadSummary

logger = logging.getLogger(__name__)


class OrderBackend(Protocol):
    """What the wizard needs from the backend. Tests provide fakes."""

    async def list_leads(self, supplier_id: str) -> list[LeadSummary]: ...

    async def client_projects(self, client_id: str) -> list[Choice]: ...

    async def create_order_bundle(self, request: dict[str, Any]) -> str: ...

    async def convert_lead_to_client(self, lead_id: str) -> str: ...


class BackendClient:
    """
    httpx wrapper authenticated as one supplier.

    The anon key identifies the project; the access token identifies the
    supplier, so every query is scoped by the backend's row-level security.
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str | None = None,
        anon_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        anon_key = anon_key if anon_key is not None else settings.backend_anon_key
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.backend_url,
            headers={
                "apikey": anon_key,
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout or settings.backend_timeout,
            transport=transport,
        )

    # ── Identity ─────────────────────────────────────────────

    async def get_user(self) -> str:
        """Return the stable user id behind the access token."""
        data = await self._request("GET", "/auth/v1/user")
        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise BackendAuthError("Unauthorized")
        return str(user_id)

    # ── Lookups ──────────────────────────────────────────────

    async def list_leads(self, supplier_id: str) -> list[LeadSummary]:
        """All leads of the supplier, newest first."""
        rows = await self._request(
            "GET",
            "/rest/v1/leads",
            params={
                "select": "id,name,contact_email,contact_phone,status,client_id",
                "supplier_id": f"eq.{supplier_id}",
                "order": "created_at.desc",
            },
        )
        return [
            LeadSummary(
                id=str(row["id"]),
                name=row.get("name") or "",
                email=row.get("contact_email"),
                phone=row.get("contact_phone"),
                status=row.get("status") or "new",
                client_id=row.get("client_id"),
            )
            for row in rows or []
        ]

    async def client_projects(self, client_id: str) -> list[Choice]:
        """Projects the supplier can see for one client."""
        rows = await self._request(
            "POST",
            "/rest/v1/rpc/supplier_client_projects",
            json={"p_client_id": client_id},
        )
        return [Choice(id=str(row["id"]), label=row.get("title") or "") for row in rows or []]

    # ── Mutations ────────────────────────────────────────────

    async def create_order_bundle(self, request: dict[str, Any]) -> str:
        """
        Commit lead + project + order + items in one backend transaction.

        Returns the new order id. A 2xx body carrying "error" is a failure.
        """
        logger.debug("create-order-bundle request: %s", request)
        data = await self._request("POST", "/functions/v1/create-order-bundle", json=request)
        order_id = data.get("order_id") if isinstance(data, dict) else None
        if not order_id:
            raise BackendError("Backend did not return an order id", details=data)
        return str(order_id)

    async def convert_lead_to_client(self, lead_id: str) -> str:
        """Create (or reuse) the client account behind a lead; returns client_id."""
        data = await self._request(
            "POST", "/functions/v1/convert-lead-to-client", json={"leadId": lead_id},
        )
        client_id = data.get("client_id") if isinstance(data, dict) else None
        if not client_id:
            raise BackendError("Lead could not be converted to a client", details=data)
        return str(client_id)

    # ── Transport ────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request; every failure surfaces as BackendError."""
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Backend %s %s failed: %s", method, path, e)
            raise BackendError("Backend is unreachable", details=str(e)) from e

        try:
            data = resp.json() if resp.content else None
        except ValueError:
            data = resp.text

        if resp.status_code in (401, 403):
            logger.warning("Backend rejected credentials for %s %s", method, path)
            raise BackendAuthError("Unauthorized", status_code=resp.status_code, details=data)

        if resp.is_error:
            logger.error("Backend %s %s → %d: %s", method, path, resp.status_code, data)
            raise _error_from_body(data, resp.status_code)

        if isinstance(data, dict) and data.get("error"):
            logger.error("Backend %s %s returned error body: %s", method, path, data)
            raise _error_from_body(data, resp.status_code)

        return data

    async def aclose(self) -> None:
        """Shut down the HTTP client."""
        await self._client.aclose()


def _error_from_body(data: Any, status_code: int) -> BackendError:
    """Normalize the backend's {"error", "details"} / {"message"} shapes."""
    if isinstance(data, dict):
        message = data.get("error") or data.get("message") or ""
        details = data.get("details")
        return BackendError(str(message), status_code=status_code, details=details)
    if isinstance(data, str) and data.strip():
        return BackendError(data.strip(), status_code=status_code)
    return BackendError("", status_code=status_code)
