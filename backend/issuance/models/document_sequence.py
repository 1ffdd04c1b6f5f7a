import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from issuance.db.base import TenantScopedBase
from issuance.models.document import DocumentType, sql_in


class DocumentSequence(TenantScopedBase):
    """Numbering state for one (tenant, document_type) pair.

    ``current_number`` is the last value handed out, or ``starting_number - 1``
    before the first allocation. Only the allocator writes it.
    """

    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint("tenant_id", "document_type", name="uq_document_sequences_tenant_type"),
        CheckConstraint(
            f"document_type IN ({sql_in(DocumentType)})",
            name="ck_document_sequences_document_type",
        ),
        CheckConstraint("starting_number >= 1", name="ck_document_sequences_starting_positive"),
        CheckConstraint(
            "current_number >= starting_number - 1",
            name="ck_document_sequences_current_floor",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, server_default=func.gen_random_uuid()
    )
    # tenant_id inherited from TenantScopedBase
    document_type: Mapped[str] = mapped_column(String(32), nullable=False)
    starting_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    current_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    prefix: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
