"""Draft document lifecycle: create, update and delete while unnumbered.

Every mutating statement carries ``document_status = 'draft'`` in its WHERE
clause, so a finalize that commits between our read and our write wins and
the mutation reports ``not_a_draft``. Nothing here touches the numbering
sequence; deleting a draft frees no number because drafts never hold one.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from issuance.core.config import settings
from issuance.models.document import Document, DocumentStatus
from issuance.schemas.document import DocumentCreate, DocumentUpdate
from issuance.services.results import DocumentError, Result

logger = logging.getLogger(__name__)


def _payments_json(payments: list) -> list[dict]:
    return [p.model_dump(mode="json") for p in payments]


async def create_draft(
    db: AsyncSession, tenant_id: uuid.UUID, body: DocumentCreate
) -> Document:
    data = body.model_dump(exclude={"document_type", "currency", "payments"})
    document = Document(
        tenant_id=tenant_id,
        document_type=body.document_type.value,
        document_status=DocumentStatus.DRAFT.value,
        document_number=None,
        currency=body.currency or settings.DEFAULT_CURRENCY,
        payments=_payments_json(body.payments),
        **data,
    )
    db.add(document)
    await db.flush()
    await db.refresh(document)
    logger.info("Created %s draft %s for tenant %s", document.document_type, document.id, tenant_id)
    return document


async def get_document(
    db: AsyncSession, tenant_id: uuid.UUID, document_id: uuid.UUID
) -> Document | None:
    result = await db.execute(
        select(Document)
        .where(Document.id == document_id, Document.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_issued_document(
    db: AsyncSession, tenant_id: uuid.UUID, document_id: uuid.UUID
) -> Result[Document]:
    """Final documents only; this is what renderers and exporters read."""
    document = await get_document(db, tenant_id, document_id)
    if document is None:
        return Result.failure(DocumentError.DOCUMENT_NOT_FOUND)
    if document.document_status != DocumentStatus.FINAL:
        return Result.failure(DocumentError.NOT_FINAL)
    return Result.success(document)


async def list_documents(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    document_type: str | None = None,
    status: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Document]:
    """Drafts first, then issued documents by number (newest first)."""
    stmt = select(Document).where(Document.tenant_id == tenant_id)
    if document_type:
        stmt = stmt.where(Document.document_type == document_type)
    if status:
        stmt = stmt.where(Document.document_status == status)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Document.document_number.ilike(pattern),
                Document.customer_name.ilike(pattern),
                Document.internal_notes.ilike(pattern),
                Document.customer_notes.ilike(pattern),
            )
        )
    stmt = (
        stmt.order_by(
            case((Document.document_status == DocumentStatus.DRAFT.value, 0), else_=1),
            Document.sequence_number.desc().nulls_first(),
            Document.created_at.desc(),
        )
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _missing_or_not_draft(
    db: AsyncSession, tenant_id: uuid.UUID, document_id: uuid.UUID
) -> DocumentError:
    status = await db.scalar(
        select(Document.document_status).where(
            Document.id == document_id, Document.tenant_id == tenant_id
        )
    )
    return DocumentError.DOCUMENT_NOT_FOUND if status is None else DocumentError.NOT_A_DRAFT


async def update_draft(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    document_id: uuid.UUID,
    body: DocumentUpdate,
) -> Result[Document]:
    changes: dict[str, Any] = body.model_dump(exclude_unset=True)
    if "payments" in changes:
        changes["payments"] = _payments_json(body.payments)

    table = Document.__table__
    updated_id = (
        await db.execute(
            update(table)
            .where(
                table.c.id == document_id,
                table.c.tenant_id == tenant_id,
                table.c.document_status == DocumentStatus.DRAFT.value,
            )
            .values(**changes, updated_at=func.now())
            .returning(table.c.id)
        )
    ).scalar_one_or_none()

    if updated_id is None:
        return Result.failure(await _missing_or_not_draft(db, tenant_id, document_id))

    return Result.success(await get_document(db, tenant_id, document_id))


async def delete_draft(
    db: AsyncSession, tenant_id: uuid.UUID, document_id: uuid.UUID
) -> Result[uuid.UUID]:
    table = Document.__table__
    deleted_id = (
        await db.execute(
            delete(table)
            .where(
                table.c.id == document_id,
                table.c.tenant_id == tenant_id,
                table.c.document_status == DocumentStatus.DRAFT.value,
            )
            .returning(table.c.id)
        )
    ).scalar_one_or_none()

    if deleted_id is None:
        return Result.failure(await _missing_or_not_draft(db, tenant_id, document_id))

    logger.info("Deleted draft %s for tenant %s", document_id, tenant_id)
    return Result.success(deleted_id)
