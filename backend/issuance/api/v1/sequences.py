"""Numbering sequence endpoints.

GET  /tenants/me/sequences/{document_type}          status (member+)
PUT  /tenants/me/sequences/{document_type}          lock starting number (owner)
GET  /tenants/me/sequences/{document_type}/preview  advisory next number (member+)
GET  /tenants/me/sequences/{document_type}/burned   unconsumed numbers (admin+)

Locking is irreversible; clients must confirm with the user before the PUT.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from issuance.core.dependencies import get_current_user, get_db_with_tenant, require_role
from issuance.core.exceptions import ProblemDetailError
from issuance.models.document import DocumentType
from issuance.models.user import User
from issuance.schemas.common import PROBLEM_RESPONSES
from issuance.schemas.sequence import (
    BurnedNumberResponse,
    NumberPreviewResponse,
    SequenceInitRequest,
    SequenceResponse,
    SequenceStatusResponse,
)
from issuance.services import numbering

router = APIRouter(responses=PROBLEM_RESPONSES)


@router.get("/{document_type}", response_model=SequenceStatusResponse)
async def get_sequence_status(
    document_type: DocumentType,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> SequenceStatusResponse:
    db, tenant_id = db_tenant
    await require_role("member", db, tenant_id, user)

    status = await numbering.get_sequence_status(db, tenant_id, document_type)
    return SequenceStatusResponse(
        document_type=document_type,
        is_locked=status.is_locked,
        starting_number=status.starting_number,
        current_number=status.current_number,
        prefix=status.prefix,
        next_number=status.next_number,
        formatted_next=status.formatted_next,
        has_final_documents=status.has_final_documents,
        requires_starting_number=status.requires_starting_number,
    )


@router.put("/{document_type}", response_model=SequenceResponse)
async def initialize_sequence(
    document_type: DocumentType,
    body: SequenceInitRequest,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> SequenceResponse:
    db, tenant_id = db_tenant
    await require_role("owner", db, tenant_id, user)

    result = await numbering.initialize_sequence(
        db, tenant_id, document_type, body.starting_number, body.prefix
    )
    if not result.ok:
        raise ProblemDetailError.from_error(result.error)
    return SequenceResponse.model_validate(result.value)


@router.get("/{document_type}/preview", response_model=NumberPreviewResponse)
async def preview_next_number(
    document_type: DocumentType,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> NumberPreviewResponse:
    db, tenant_id = db_tenant
    await require_role("member", db, tenant_id, user)

    result = await numbering.preview_next(db, tenant_id, document_type)
    if not result.ok:
        raise ProblemDetailError.from_error(result.error)
    return NumberPreviewResponse(
        document_type=document_type,
        next_number=result.value.next_number,
        formatted=result.value.formatted,
    )


@router.get("/{document_type}/burned", response_model=list[BurnedNumberResponse])
async def list_burned_numbers(
    document_type: DocumentType,
    user: User = Depends(get_current_user),
    db_tenant: tuple[AsyncSession, uuid.UUID] = Depends(get_db_with_tenant),
) -> list[BurnedNumberResponse]:
    db, tenant_id = db_tenant
    await require_role("admin", db, tenant_id, user)

    burned = await numbering.list_burned_numbers(db, tenant_id, document_type)
    return [BurnedNumberResponse.model_validate(b) for b in burned]
