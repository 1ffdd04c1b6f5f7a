"""Shared helpers for service and API tests."""

import uuid
from datetime import UTC, datetime

from httpx import AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from issuance.core.security import create_access_token
from issuance.models.tenant import Tenant
from issuance.models.tenant_member import TenantMember
from issuance.models.user import User
from issuance.schemas.document import DocumentCreate


def uid() -> str:
    return uuid.uuid4().hex[:8]


def auth_headers(sub: str = "test-sub", email: str = "test@example.com") -> dict:
    """Return Authorization headers with a mock JWT."""
    token = create_access_token(sub=sub, email=email)
    return {"Authorization": f"Bearer {token}"}


async def seed_tenant(db: AsyncSession) -> uuid.UUID:
    """Create a tenant + owner in the given session and return tenant_id."""
    tenant = Tenant(name=f"Tenant-{uid()}", slug=f"t-{uid()}")
    db.add(tenant)
    await db.flush()

    user = User(
        auth_sub=f"sub-{uid()}",
        email=f"u-{uid()}@test.com",
        full_name="Test",
    )
    db.add(user)
    await db.flush()

    await db.execute(
        text("SELECT set_config('app.current_tenant', :tid, true)"),
        {"tid": str(tenant.id)},
    )

    db.add(
        TenantMember(
            tenant_id=tenant.id,
            user_id=user.id,
            role="owner",
            status="active",
            joined_at=datetime.now(UTC),
        )
    )
    await db.flush()
    return tenant.id


def draft_body(document_type: str = "receipt", **fields) -> DocumentCreate:
    data = {"document_type": document_type, "customer_name": f"Customer {uid()}"}
    data.update(fields)
    return DocumentCreate.model_validate(data)


async def create_tenant_get_headers(
    client: AsyncClient,
    *,
    slug_prefix: str = "doc",
) -> tuple[dict, str, str]:
    """Create a tenant via the API and return (owner headers, slug, tenant_id).

    Uses a unique sub/email per call so each test gets an isolated tenant.
    """
    unique = uid()
    sub = f"{slug_prefix}-sub-{unique}"
    email = f"{slug_prefix}-{unique}@example.com"
    slug = f"{slug_prefix}-{unique}"
    headers = auth_headers(sub=sub, email=email)
    headers["Content-Type"] = "application/json"

    resp = await client.post(
        "/api/v1/tenants/",
        json={"name": f"Test {slug}", "slug": slug},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return headers, slug, resp.json()["id"]


async def add_member(
    db: AsyncSession, tenant_id: str, role: str
) -> dict:
    """Add a committed member with ``role`` to an API-created tenant; return headers."""
    unique = uid()
    sub = f"{role}-sub-{unique}"
    user = User(auth_sub=sub, email=f"{role}-{unique}@example.com", full_name=role)
    db.add(user)
    await db.flush()
    db.add(
        TenantMember(
            tenant_id=uuid.UUID(tenant_id),
            user_id=user.id,
            role=role,
            status="active",
            joined_at=datetime.now(UTC),
        )
    )
    await db.commit()
    headers = auth_headers(sub=sub, email=user.email)
    headers["Content-Type"] = "application/json"
    return headers
