"""FastAPI dependency chain: JWT → User → Tenant → SET LOCAL."""

import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from issuance.core.security import decode_access_token
from issuance.db.session import async_session_factory
from issuance.models.tenant_member import ROLE_RANK, TenantMember
from issuance.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session. Commits on success, rolls back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    """Extract and verify the Bearer token, returning JWT claims."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    try:
        claims = decode_access_token(credentials.credentials)
    except JWTError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}") from e

    return claims


async def get_current_user(
    claims: dict = Depends(get_current_user_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the token subject to a User row, provisioning it on first sight."""
    sub = claims["sub"]

    result = await db.execute(select(User).where(User.auth_sub == sub))
    user = result.scalar_one_or_none()

    if user is None:
        email = claims.get("email", f"{sub}@placeholder.local")
        user = User(
            auth_sub=sub,
            email=email,
            full_name=claims.get("name", email),
        )
        db.add(user)
        await db.flush()

    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is deactivated")

    return user


async def get_db_with_tenant(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> tuple[AsyncSession, uuid.UUID]:
    """Resolve the caller's tenant and scope the transaction to it.

    1. SET LOCAL app.current_user_id (for RLS membership lookup)
    2. Find the active membership (X-Tenant-Id picks one explicitly)
    3. SET LOCAL app.current_tenant
    4. Return (session, tenant_id)
    """
    await db.execute(
        text("SELECT set_config('app.current_user_id', :uid, true)"),
        {"uid": str(user.id)},
    )

    requested_tenant_id = request.headers.get("X-Tenant-Id")

    stmt = select(TenantMember).where(
        TenantMember.user_id == user.id,
        TenantMember.status == "active",
    )
    if requested_tenant_id:
        try:
            tid = uuid.UUID(requested_tenant_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid X-Tenant-Id header") from exc
        stmt = stmt.where(TenantMember.tenant_id == tid)
    else:
        stmt = stmt.order_by(TenantMember.joined_at.asc()).limit(1)

    result = await db.execute(stmt)
    membership = result.scalar_one_or_none()
    if membership is None:
        raise HTTPException(status_code=403, detail="No active tenant membership")

    tenant_id = membership.tenant_id

    await db.execute(
        text("SELECT set_config('app.current_tenant', :tid, true)"),
        {"tid": str(tenant_id)},
    )

    return db, tenant_id


async def require_role(
    min_role: str,
    db: AsyncSession,
    tenant_id: uuid.UUID,
    user: User,
) -> TenantMember:
    """Check the user has at least min_role in the current tenant.

    Call from route handlers after get_db_with_tenant.
    """
    result = await db.execute(
        select(TenantMember).where(
            TenantMember.tenant_id == tenant_id,
            TenantMember.user_id == user.id,
            TenantMember.status == "active",
        )
    )
    membership = result.scalar_one_or_none()

    if membership is None or ROLE_RANK.get(membership.role, 0) < ROLE_RANK[min_role]:
        raise HTTPException(status_code=403, detail=f"Requires {min_role} role or higher")

    return membership
