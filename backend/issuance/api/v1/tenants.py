"""Tenant management endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from issuance.core.config import settings
from issuance.core.dependencies import get_current_user, get_db, get_db_with_tenant
from issuance.models.tenant import Tenant
from issuance.models.tenant_member import TenantMember
from issuance.models.user import User
from issuance.schemas.tenant import TenantCreate, TenantResponse

router = APIRouter()


@router.post("/", response_model=TenantResponse, status_code=201)
async def create_tenant(
    body: TenantCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new tenant. The authenticated user becomes the owner.

    Pre-tenant endpoint: uses get_current_user (not get_db_with_tenant)
    because the user may not belong to any tenant yet.
    """
    tenant = Tenant(
        name=body.name,
        slug=body.slug,
        registration_number=body.registration_number,
        default_currency=body.default_currency or settings.DEFAULT_CURRENCY,
    )
    db.add(tenant)

    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Slug already taken") from exc

    # tenant_members INSERT is checked by RLS against this setting
    await db.execute(
        text("SELECT set_config('app.current_tenant', :tid, true)"),
        {"tid": str(tenant.id)},
    )

    membership = TenantMember(
        tenant_id=tenant.id,
        user_id=user.id,
        role="owner",
        status="active",
        joined_at=datetime.now(UTC),
    )
    db.add(membership)
    await db.flush()
    await db.refresh(tenant)

    return tenant


@router.get("/me", response_model=TenantResponse)
async def get_current_tenant(
    tenant_data: tuple = Depends(get_db_with_tenant),
):
    """Get the current tenant (resolved from JWT)."""
    db, tenant_id = tenant_data
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    tenant = result.scalar_one_or_none()
    if tenant is None:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant
