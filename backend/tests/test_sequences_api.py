"""HTTP tests for /tenants/me/sequences."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers import add_member, create_tenant_get_headers

BASE = "/api/v1/tenants/me/sequences"


@pytest.mark.asyncio
async def test_status_before_lock(client: AsyncClient):
    headers, _, _ = await create_tenant_get_headers(client, slug_prefix="seq")

    resp = await client.get(f"{BASE}/receipt", headers=headers)

    assert resp.status_code == 200
    data = resp.json()
    assert data["is_locked"] is False
    assert data["requires_starting_number"] is True
    assert data["formatted_next"] is None


@pytest.mark.asyncio
async def test_lock_then_preview(client: AsyncClient):
    headers, _, _ = await create_tenant_get_headers(client, slug_prefix="seq")

    lock = await client.put(
        f"{BASE}/receipt", json={"starting_number": 100, "prefix": "R-"}, headers=headers
    )
    assert lock.status_code == 200, lock.text
    assert lock.json()["is_locked"] is True
    assert lock.json()["current_number"] == 99

    preview = await client.get(f"{BASE}/receipt/preview", headers=headers)
    assert preview.status_code == 200
    assert preview.json() == {"document_type": "receipt", "next_number": 100, "formatted": "R-000100"}


@pytest.mark.asyncio
async def test_relock_returns_409_problem(client: AsyncClient):
    headers, _, _ = await create_tenant_get_headers(client, slug_prefix="seq")
    await client.put(f"{BASE}/receipt", json={"starting_number": 100}, headers=headers)

    resp = await client.put(f"{BASE}/receipt", json={"starting_number": 500}, headers=headers)

    assert resp.status_code == 409
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["type"] == "urn:issuance:error:sequence_already_locked"
    assert body["instance"] == f"{BASE}/receipt"

    preview = await client.get(f"{BASE}/receipt/preview", headers=headers)
    assert preview.json()["next_number"] == 100


@pytest.mark.asyncio
async def test_preview_not_initialized_is_422(client: AsyncClient):
    headers, _, _ = await create_tenant_get_headers(client, slug_prefix="seq")

    resp = await client.get(f"{BASE}/tax_invoice/preview", headers=headers)

    assert resp.status_code == 422
    assert resp.json()["type"] == "urn:issuance:error:sequence_not_initialized"


@pytest.mark.asyncio
async def test_invalid_starting_number_is_422(client: AsyncClient):
    headers, _, _ = await create_tenant_get_headers(client, slug_prefix="seq")

    for bad in (0, -3, "12", 1.5):
        resp = await client.put(f"{BASE}/receipt", json={"starting_number": bad}, headers=headers)
        assert resp.status_code == 422

    status = await client.get(f"{BASE}/receipt", headers=headers)
    assert status.json()["is_locked"] is False


@pytest.mark.asyncio
async def test_unknown_document_type_is_422(client: AsyncClient):
    headers, _, _ = await create_tenant_get_headers(client, slug_prefix="seq")
    resp = await client.get(f"{BASE}/purchase_order", headers=headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_only_owner_can_lock(client: AsyncClient, db: AsyncSession):
    _, _, tenant_id = await create_tenant_get_headers(client, slug_prefix="seq")
    admin = await add_member(db, tenant_id, "admin")

    resp = await client.put(f"{BASE}/receipt", json={"starting_number": 1}, headers=admin)
    assert resp.status_code == 403

    # admins can still read the status
    status = await client.get(f"{BASE}/receipt", headers=admin)
    assert status.status_code == 200


@pytest.mark.asyncio
async def test_burned_numbers_empty_and_admin_only(client: AsyncClient, db: AsyncSession):
    headers, _, tenant_id = await create_tenant_get_headers(client, slug_prefix="seq")
    member = await add_member(db, tenant_id, "member")

    owner_resp = await client.get(f"{BASE}/receipt/burned", headers=headers)
    assert owner_resp.status_code == 200
    assert owner_resp.json() == []

    member_resp = await client.get(f"{BASE}/receipt/burned", headers=member)
    assert member_resp.status_code == 403
