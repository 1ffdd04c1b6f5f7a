"""HTTP tests for /tenants/me/documents: drafts, finalize, issued read."""

import asyncio
import uuid
from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from issuance.models.document_sequence import DocumentSequence
from issuance.services import numbering
from tests.helpers import add_member, create_tenant_get_headers

DOCS = "/api/v1/tenants/me/documents"
SEQS = "/api/v1/tenants/me/sequences"


async def _tenant_with_receipts(client: AsyncClient, starting_number: int = 1) -> tuple[dict, str]:
    headers, _, tenant_id = await create_tenant_get_headers(client, slug_prefix="docs")
    resp = await client.put(
        f"{SEQS}/receipt", json={"starting_number": starting_number}, headers=headers
    )
    assert resp.status_code == 200, resp.text
    return headers, tenant_id


async def _create_draft(client: AsyncClient, headers: dict, **fields) -> dict:
    payload = {"document_type": "receipt", "customer_name": "Avi Ben-David"}
    payload.update(fields)
    resp = await client.post(DOCS, json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_create_and_read_draft(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)

    created = await _create_draft(
        client,
        headers,
        total_amount="350.00",
        payments=[
            {
                "method": "check",
                "payment_date": "2026-04-10",
                "amount": "350.00",
                "check_number": "1001",
                "bank_name": "Hapoalim",
            }
        ],
    )
    assert created["document_status"] == "draft"
    assert created["document_number"] is None
    assert created["currency"] == "ILS"

    resp = await client.get(f"{DOCS}/{created['id']}", headers=headers)
    assert resp.status_code == 200
    payment = resp.json()["payments"][0]
    assert payment["method"] == "check"
    assert payment["check_number"] == "1001"


@pytest.mark.asyncio
async def test_create_rejects_bad_payment(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)
    resp = await client.post(
        DOCS,
        json={
            "document_type": "receipt",
            "customer_name": "x",
            "payments": [{"method": "check", "payment_date": "2026-04-10", "amount": "5"}],
        },
        headers=headers,
    )
    assert resp.status_code == 422
    assert resp.json()["title"] == "Validation Error"


@pytest.mark.asyncio
async def test_finalize_flow(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)
    draft = await _create_draft(client, headers)

    preview = await client.get(f"{SEQS}/receipt/preview", headers=headers)
    assert preview.json()["formatted"] == "000001"

    resp = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["document_number"] == "000001"
    assert body["document_status"] == "final"
    assert body["already_final"] is False

    issued = await client.get(f"{DOCS}/{draft['id']}/issued", headers=headers)
    assert issued.status_code == 200
    assert issued.json()["document_number"] == "000001"

    status = await client.get(f"{SEQS}/receipt", headers=headers)
    assert status.json()["has_final_documents"] is True
    assert status.json()["formatted_next"] == "000002"


@pytest.mark.asyncio
async def test_finalize_twice_reports_existing_number(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)
    draft = await _create_draft(client, headers)

    first = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=headers)
    second = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=headers)

    assert second.status_code == 200
    assert second.json()["already_final"] is True
    assert second.json()["document_number"] == first.json()["document_number"]

    preview = await client.get(f"{SEQS}/receipt/preview", headers=headers)
    assert preview.json()["formatted"] == "000002"


@pytest.mark.asyncio
async def test_finalize_without_starting_number_is_422(client: AsyncClient):
    headers, _, _ = await create_tenant_get_headers(client, slug_prefix="docs")
    draft = await _create_draft(client, headers)

    resp = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=headers)

    assert resp.status_code == 422
    assert resp.json()["type"] == "urn:issuance:error:sequence_not_initialized"
    again = await client.get(f"{DOCS}/{draft['id']}", headers=headers)
    assert again.json()["document_status"] == "draft"


@pytest.mark.asyncio
async def test_concurrent_finalize_over_http(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client, starting_number=40)
    drafts = [await _create_draft(client, headers) for _ in range(5)]

    responses = await asyncio.gather(
        *(client.post(f"{DOCS}/{d['id']}/finalize", headers=headers) for d in drafts)
    )

    assert all(r.status_code == 200 for r in responses)
    numbers = sorted(r.json()["document_number"] for r in responses)
    assert numbers == ["000040", "000041", "000042", "000043", "000044"]


@pytest.mark.asyncio
async def test_final_document_is_frozen(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)
    draft = await _create_draft(client, headers)
    await client.post(f"{DOCS}/{draft['id']}/finalize", headers=headers)

    patch = await client.patch(
        f"{DOCS}/{draft['id']}", json={"customer_name": "Other"}, headers=headers
    )
    assert patch.status_code == 409
    assert patch.json()["type"] == "urn:issuance:error:not_a_draft"

    delete = await client.delete(f"{DOCS}/{draft['id']}", headers=headers)
    assert delete.status_code == 409


@pytest.mark.asyncio
async def test_update_and_delete_draft(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)
    draft = await _create_draft(client, headers)

    patch = await client.patch(
        f"{DOCS}/{draft['id']}",
        json={"customer_notes": "Thank you!", "total_amount": "12.50"},
        headers=headers,
    )
    assert patch.status_code == 200, patch.text
    assert patch.json()["customer_notes"] == "Thank you!"
    assert patch.json()["total_amount"] == "12.50"

    null_name = await client.patch(
        f"{DOCS}/{draft['id']}", json={"customer_name": None}, headers=headers
    )
    assert null_name.status_code == 422

    delete = await client.delete(f"{DOCS}/{draft['id']}", headers=headers)
    assert delete.status_code == 204

    gone = await client.get(f"{DOCS}/{draft['id']}", headers=headers)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_issued_read_of_draft_is_409(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)
    draft = await _create_draft(client, headers)

    resp = await client.get(f"{DOCS}/{draft['id']}/issued", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["type"] == "urn:issuance:error:document_not_final"


@pytest.mark.asyncio
async def test_unknown_document_is_404(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)
    resp = await client.post(f"{DOCS}/{uuid.uuid4()}/finalize", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_filters_by_status(client: AsyncClient):
    headers, _ = await _tenant_with_receipts(client)
    final = await _create_draft(client, headers, customer_name="Final Customer")
    await _create_draft(client, headers, customer_name="Draft Customer")
    await client.post(f"{DOCS}/{final['id']}/finalize", headers=headers)

    all_docs = await client.get(DOCS, headers=headers)
    finals = await client.get(DOCS, params={"status": "final"}, headers=headers)

    assert [d["customer_name"] for d in all_docs.json()] == ["Draft Customer", "Final Customer"]
    assert [d["document_number"] for d in finals.json()] == ["000001"]


@pytest.mark.asyncio
async def test_documents_are_tenant_scoped(client: AsyncClient):
    headers_a, _ = await _tenant_with_receipts(client)
    headers_b, _ = await _tenant_with_receipts(client)
    draft = await _create_draft(client, headers_a)

    resp = await client.get(f"{DOCS}/{draft['id']}", headers=headers_b)
    assert resp.status_code == 404

    finalize = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=headers_b)
    assert finalize.status_code == 404


@pytest.mark.asyncio
async def test_member_can_edit_but_not_finalize(client: AsyncClient, db: AsyncSession):
    owner, tenant_id = await _tenant_with_receipts(client)
    member = await add_member(db, tenant_id, "member")
    admin = await add_member(db, tenant_id, "admin")

    draft = await _create_draft(client, member)

    denied = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=member)
    assert denied.status_code == 403

    allowed = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=admin)
    assert allowed.status_code == 200
    assert allowed.json()["document_number"] == "000001"


@pytest.mark.asyncio
async def test_finalize_conflict_commits_burned_number(
    client: AsyncClient, session_factory: async_sessionmaker, monkeypatch
):
    """A number allocated but not written survives the 409 in the burned ledger."""
    headers, tenant_id = await _tenant_with_receipts(client)
    draft = await _create_draft(client, headers)
    first = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=headers)
    assert first.json()["document_number"] == "000001"

    # the pre-read still sees a draft, the guarded write then finds a final row
    real_load = numbering._load_document
    calls = []

    async def stale_first_read(session, tid, document_id):
        calls.append(document_id)
        if len(calls) == 1:
            return SimpleNamespace(
                id=document_id, document_type="receipt", document_status="draft"
            )
        return await real_load(session, tid, document_id)

    monkeypatch.setattr(numbering, "_load_document", stale_first_read)

    resp = await client.post(f"{DOCS}/{draft['id']}/finalize", headers=headers)

    assert resp.status_code == 409
    assert resp.json()["type"] == "urn:issuance:error:finalize_conflict"
    monkeypatch.undo()

    burned = await client.get(f"{SEQS}/receipt/burned", headers=headers)
    assert burned.status_code == 200
    rows = burned.json()
    assert [(b["sequence_value"], b["document_number"]) for b in rows] == [(2, "000002")]
    assert rows[0]["document_id"] == draft["id"]

    async with session_factory() as session:
        current = await session.scalar(
            select(DocumentSequence.current_number).where(
                DocumentSequence.tenant_id == uuid.UUID(tenant_id),
                DocumentSequence.document_type == "receipt",
            )
        )
    assert current == 2

    document = await client.get(f"{DOCS}/{draft['id']}", headers=headers)
    assert document.json()["document_number"] == "000001"
