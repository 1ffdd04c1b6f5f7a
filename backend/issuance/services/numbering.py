"""Tenant-scoped document numbering.

Each (tenant, document_type) pair owns one ``document_sequences`` row. The
tenant locks a starting number once; after that the only writer of
``current_number`` is :func:`allocate`, a single ``UPDATE ... RETURNING``
statement. PostgreSQL's row lock on that UPDATE serialises concurrent
callers across every server instance, so each value is handed out once and
the run stays contiguous. No in-process locking is involved.

Previews read the same row without locking and are advisory only: a
concurrent finalize may claim the previewed value first.

Finalization allocates and then writes the number onto the document in the
caller's transaction, guarded by ``document_status = 'draft'``. If that
guarded write matches nothing, the allocated value is recorded in
``burned_document_numbers`` and reported as ``finalize_conflict``.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import exists, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from issuance.models.burned_number import BurnedDocumentNumber
from issuance.models.document import Document, DocumentStatus
from issuance.models.document_sequence import DocumentSequence
from issuance.services.results import DocumentError, Result

logger = logging.getLogger(__name__)

# printed on issued documents; changing it breaks continuity with paper records
NUMBER_WIDTH = 6


@dataclass(frozen=True, slots=True)
class NumberPreview:
    next_number: int
    formatted: str


@dataclass(frozen=True, slots=True)
class AllocatedNumber:
    value: int
    formatted: str


@dataclass(frozen=True, slots=True)
class SequenceStatus:
    is_locked: bool
    starting_number: int | None
    current_number: int | None
    prefix: str
    next_number: int | None
    formatted_next: str | None
    has_final_documents: bool

    @property
    def requires_starting_number(self) -> bool:
        return not self.is_locked and not self.has_final_documents


@dataclass(frozen=True, slots=True)
class FinalizedDocument:
    document: Document
    already_final: bool = False

    @property
    def document_number(self) -> str:
        return self.document.document_number  # type: ignore[return-value]


def format_document_number(number: int, prefix: str | None = None) -> str:
    """Return e.g. ``'A-000042'`` for ``(42, 'A-')``."""
    return f"{prefix or ''}{number:0{NUMBER_WIDTH}d}"


def next_number_for(sequence: DocumentSequence) -> int:
    return max(sequence.current_number + 1, sequence.starting_number)


async def _get_sequence(
    db: AsyncSession, tenant_id: uuid.UUID, document_type: str
) -> DocumentSequence | None:
    result = await db.execute(
        select(DocumentSequence)
        .where(
            DocumentSequence.tenant_id == tenant_id,
            DocumentSequence.document_type == document_type,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------


async def initialize_sequence(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    document_type: str,
    starting_number: int,
    prefix: str | None = None,
) -> Result[DocumentSequence]:
    """Lock the starting number for a tenant's document type. Irreversible.

    Creates the sequence row, or rewrites a row that exists but was never
    locked. A locked row is left untouched and ``sequence_already_locked`` is
    returned. Insert-or-update runs as one ``INSERT ... ON CONFLICT`` so two
    concurrent first-time locks cannot both succeed.
    """
    if isinstance(starting_number, bool) or not isinstance(starting_number, int):
        return Result.failure(DocumentError.INVALID_STARTING_NUMBER)
    if starting_number < 1:
        return Result.failure(DocumentError.INVALID_STARTING_NUMBER)

    stmt = pg_insert(DocumentSequence).values(
        tenant_id=tenant_id,
        document_type=document_type,
        starting_number=starting_number,
        current_number=starting_number - 1,
        prefix=prefix or "",
        is_locked=True,
        locked_at=func.now(),
    )
    stmt = stmt.on_conflict_do_update(
        constraint="uq_document_sequences_tenant_type",
        set_={
            "starting_number": stmt.excluded.starting_number,
            "current_number": stmt.excluded.current_number,
            "prefix": stmt.excluded.prefix,
            "is_locked": True,
            "locked_at": stmt.excluded.locked_at,
            "updated_at": func.now(),
        },
        where=DocumentSequence.__table__.c.is_locked.is_(False),
    ).returning(DocumentSequence.__table__.c.id)

    locked_id = (await db.execute(stmt)).scalar_one_or_none()
    if locked_id is None:
        logger.warning(
            "Rejected re-lock of %s sequence for tenant %s (requested start %s)",
            document_type,
            tenant_id,
            starting_number,
        )
        return Result.failure(DocumentError.ALREADY_LOCKED)

    sequence = await _get_sequence(db, tenant_id, document_type)
    logger.info(
        "Locked %s sequence for tenant %s at %s (prefix %r)",
        document_type,
        tenant_id,
        starting_number,
        prefix or "",
    )
    return Result.success(sequence)


# ---------------------------------------------------------------------------
# Read-only views
# ---------------------------------------------------------------------------


async def preview_next(
    db: AsyncSession, tenant_id: uuid.UUID, document_type: str
) -> Result[NumberPreview]:
    """What the next finalize would currently receive. Never mutates state."""
    sequence = await _get_sequence(db, tenant_id, document_type)
    if sequence is None or not sequence.is_locked:
        return Result.failure(DocumentError.NOT_INITIALIZED)

    next_number = next_number_for(sequence)
    return Result.success(
        NumberPreview(
            next_number=next_number,
            formatted=format_document_number(next_number, sequence.prefix),
        )
    )


async def get_sequence_status(
    db: AsyncSession, tenant_id: uuid.UUID, document_type: str
) -> SequenceStatus:
    """Lock state plus whether documents were already issued for this type.

    A document counts as issued once it carries a number, including ones
    later cancelled or voided.
    """
    sequence = await _get_sequence(db, tenant_id, document_type)
    has_final = await db.scalar(
        select(
            exists().where(
                Document.tenant_id == tenant_id,
                Document.document_type == document_type,
                Document.document_number.is_not(None),
            )
        )
    )

    if sequence is None:
        return SequenceStatus(
            is_locked=False,
            starting_number=None,
            current_number=None,
            prefix="",
            next_number=None,
            formatted_next=None,
            has_final_documents=bool(has_final),
        )

    next_number = next_number_for(sequence) if sequence.is_locked else None
    return SequenceStatus(
        is_locked=sequence.is_locked,
        starting_number=sequence.starting_number,
        current_number=sequence.current_number,
        prefix=sequence.prefix,
        next_number=next_number,
        formatted_next=(
            format_document_number(next_number, sequence.prefix)
            if next_number is not None
            else None
        ),
        has_final_documents=bool(has_final),
    )


async def list_burned_numbers(
    db: AsyncSession, tenant_id: uuid.UUID, document_type: str
) -> list[BurnedDocumentNumber]:
    result = await db.execute(
        select(BurnedDocumentNumber)
        .where(
            BurnedDocumentNumber.tenant_id == tenant_id,
            BurnedDocumentNumber.document_type == document_type,
        )
        .order_by(BurnedDocumentNumber.sequence_value.asc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------


async def allocate(
    db: AsyncSession, tenant_id: uuid.UUID, document_type: str
) -> Result[AllocatedNumber]:
    """Claim the next number of a locked sequence.

    Read, increment and write-back happen inside one UPDATE; the row lock it
    takes is held until the caller's transaction ends, so concurrent callers
    for the same key queue behind it and each sees the committed value.
    Callers must consume the number in the same transaction.
    """
    table = DocumentSequence.__table__
    stmt = (
        update(table)
        .where(
            table.c.tenant_id == tenant_id,
            table.c.document_type == document_type,
            table.c.is_locked.is_(True),
        )
        .values(
            current_number=func.greatest(table.c.current_number, table.c.starting_number - 1)
            + 1,
            updated_at=func.now(),
        )
        .returning(table.c.current_number, table.c.prefix)
    )
    row = (await db.execute(stmt)).one_or_none()

    if row is None:
        sequence = await _get_sequence(db, tenant_id, document_type)
        error = (
            DocumentError.SEQUENCE_NOT_FOUND if sequence is None else DocumentError.NOT_LOCKED
        )
        logger.warning(
            "Refused allocation for %s sequence of tenant %s: %s",
            document_type,
            tenant_id,
            error.value,
        )
        return Result.failure(error)

    value, prefix = row
    allocated = AllocatedNumber(value=value, formatted=format_document_number(value, prefix))
    logger.info(
        "Allocated %s number %s for tenant %s", document_type, allocated.formatted, tenant_id
    )
    return Result.success(allocated)


# ---------------------------------------------------------------------------
# Finalization
# ---------------------------------------------------------------------------


async def _load_document(
    db: AsyncSession, tenant_id: uuid.UUID, document_id: uuid.UUID
) -> Document | None:
    result = await db.execute(
        select(Document)
        .where(Document.id == document_id, Document.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def finalize_document(
    db: AsyncSession, tenant_id: uuid.UUID, document_id: uuid.UUID
) -> Result[FinalizedDocument]:
    """Allocate a number and turn a draft into a final document.

    Safe to call again for a document that is already final: the existing
    number is reported and nothing is allocated. The allocation and the
    guarded document write share the caller's transaction; a caller that
    loses the outcome of a commit must re-read the document before retrying.
    """
    document = await _load_document(db, tenant_id, document_id)
    if document is None:
        return Result.failure(DocumentError.DOCUMENT_NOT_FOUND)
    if document.document_status == DocumentStatus.FINAL:
        return Result.success(FinalizedDocument(document=document, already_final=True))
    if document.document_status != DocumentStatus.DRAFT:
        return Result.failure(DocumentError.NOT_A_DRAFT)

    document_type = document.document_type
    allocation = await allocate(db, tenant_id, document_type)
    if not allocation.ok:
        # document untouched, nothing consumed
        return Result.failure(DocumentError.NOT_INITIALIZED)
    number = allocation.value

    table = Document.__table__
    finalized_id = (
        await db.execute(
            update(table)
            .where(
                table.c.id == document_id,
                table.c.tenant_id == tenant_id,
                table.c.document_status == DocumentStatus.DRAFT.value,
            )
            .values(
                document_number=number.formatted,
                sequence_number=number.value,
                document_status=DocumentStatus.FINAL.value,
                finalized_at=func.now(),
                updated_at=func.now(),
            )
            .returning(table.c.id)
        )
    ).scalar_one_or_none()

    if finalized_id is None:
        logger.error(
            "Finalize conflict: %s number %s allocated for document %s of tenant %s "
            "was not consumed; the number is burned",
            document_type,
            number.formatted,
            document_id,
            tenant_id,
        )
        db.add(
            BurnedDocumentNumber(
                tenant_id=tenant_id,
                document_type=document_type,
                sequence_value=number.value,
                document_number=number.formatted,
                document_id=document_id,
                reason="document was no longer a draft when the number was written",
            )
        )
        await db.flush()
        return Result.failure(DocumentError.FINALIZE_CONFLICT)

    document = await _load_document(db, tenant_id, document_id)
    logger.info(
        "Finalized %s %s as %s for tenant %s",
        document_type,
        document_id,
        number.formatted,
        tenant_id,
    )
    return Result.success(FinalizedDocument(document=document))
