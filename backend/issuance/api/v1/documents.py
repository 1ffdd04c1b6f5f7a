"""Tenant-scoped document endpoints.

POST   /tenants/me/documents                  create draft (member+)
GET    /tenants/me/documents                  list (member+)
GET    /tenants/me/documents/{id}             read (member+)
PATCH  /tenants/me/documents/{id}             update draft (member+)
DELETE /tenants/me/documents/{id}             delete draft (member+)
POST   /tenants/me/documents/{id}/finalize    allocate number, draft → final (admin+)
GET    /tenants/me/documents/{id}/issued      renderer view of a final document (member+)
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from issuance.core.dependencies import get_current_user, get_db_with_tenant, require_role
from issuance.core.exceptions import ProblemDetailError
from issuance.models.document import DocumentStatus, DocumentType
from issuance.models.user import User
from issuance.schemas.common import PROBLEM_RESPONSES
from issuance.schemas.document import (
    DocumentCreate,
    DocumentListItem,
    DocumentResponse,
    DocumentUpdate,
    FinalizeResponse,
    IssuedDocumentResponse,
)
from issuance.services import drafts, numbering
from issuance.services.results import DocumentError

router = APIRouter(responses=PROBLEM_RESPONSES)

DEFAULT_LIMIT = 50


@router.post("", response_model=DocumentResponse, status_code=201)
async def create_document(
    body: DocumentCreate,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> DocumentResponse:
    db, tenant_id = db_tenant
    await require_role("member", db, tenant_id, user)

    document = await drafts.create_draft(db, tenant_id, body)
    return DocumentResponse.model_validate(document)


@router.get("", response_model=list[DocumentListItem])
async def list_documents(
    document_type: DocumentType | None = Query(None),
    status: DocumentStatus | None = Query(None),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> list[DocumentListItem]:
    db, tenant_id = db_tenant
    await require_role("member", db, tenant_id, user)

    documents = await drafts.list_documents(
        db,
        tenant_id,
        document_type=document_type,
        status=status,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [DocumentListItem.model_validate(d) for d in documents]


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> DocumentResponse:
    db, tenant_id = db_tenant
    await require_role("member", db, tenant_id, user)

    document = await drafts.get_document(db, tenant_id, document_id)
    if document is None:
        raise ProblemDetailError.from_error(DocumentError.DOCUMENT_NOT_FOUND)
    return DocumentResponse.model_validate(document)


@router.patch("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: uuid.UUID,
    body: DocumentUpdate,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> DocumentResponse:
    db, tenant_id = db_tenant
    await require_role("member", db, tenant_id, user)

    result = await drafts.update_draft(db, tenant_id, document_id, body)
    if not result.ok:
        raise ProblemDetailError.from_error(result.error)
    return DocumentResponse.model_validate(result.value)


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> Response:
    db, tenant_id = db_tenant
    await require_role("member", db, tenant_id, user)

    result = await drafts.delete_draft(db, tenant_id, document_id)
    if not result.ok:
        raise ProblemDetailError.from_error(result.error)
    return Response(status_code=204)


@router.post("/{document_id}/finalize", response_model=FinalizeResponse)
async def finalize_document(
    document_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> FinalizeResponse:
    db, tenant_id = db_tenant
    await require_role("admin", db, tenant_id, user)

    result = await numbering.finalize_document(db, tenant_id, document_id)
    if not result.ok:
        if result.error is DocumentError.FINALIZE_CONFLICT:
            # keep the burned-number record; the increment commits with it
            await db.commit()
        raise ProblemDetailError.from_error(result.error)

    document = result.value.document
    return FinalizeResponse(
        id=document.id,
        document_type=document.document_type,
        document_status=document.document_status,
        document_number=document.document_number,
        finalized_at=document.finalized_at,
        already_final=result.value.already_final,
    )


@router.get("/{document_id}/issued", response_model=IssuedDocumentResponse)
async def get_issued_document(
    document_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> IssuedDocumentResponse:
    db, tenant_id = db_tenant
    await require_role("member", db, tenant_id, user)

    result = await drafts.get_issued_document(db, tenant_id, document_id)
    if not result.ok:
        raise ProblemDetailError.from_error(result.error)
    return IssuedDocumentResponse.model_validate(result.value)
