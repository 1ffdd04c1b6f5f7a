import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from issuance.db.base import TenantScopedBase


class DocumentType(StrEnum):
    RECEIPT = "receipt"
    TAX_INVOICE = "tax_invoice"
    TAX_INVOICE_RECEIPT = "tax_invoice_receipt"
    CREDIT_INVOICE = "credit_invoice"
    QUOTE = "quote"
    DELIVERY_NOTE = "delivery_note"


class DocumentStatus(StrEnum):
    DRAFT = "draft"
    FINAL = "final"
    CANCELLED = "cancelled"
    VOIDED = "voided"


def sql_in(values: type[StrEnum]) -> str:
    return ", ".join(f"'{v.value}'" for v in values)


class Document(TenantScopedBase):
    """A financial document: mutable and unnumbered while draft, frozen once final."""

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "document_type",
            "document_number",
            name="uq_documents_tenant_type_number",
        ),
        CheckConstraint(
            f"document_type IN ({sql_in(DocumentType)})", name="ck_documents_document_type"
        ),
        CheckConstraint(
            f"document_status IN ({sql_in(DocumentStatus)})",
            name="ck_documents_document_status",
        ),
        # drafts never carry a number, final documents always do
        CheckConstraint(
            "document_status <> 'draft' OR document_number IS NULL",
            name="ck_documents_draft_unnumbered",
        ),
        CheckConstraint(
            "document_status <> 'final' OR "
            "(document_number IS NOT NULL AND finalized_at IS NOT NULL)",
            name="ck_documents_final_numbered",
        ),
        Index("ix_documents_tenant_type_status", "tenant_id", "document_type", "document_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, server_default=func.gen_random_uuid()
    )
    # tenant_id inherited from TenantScopedBase
    document_type: Mapped[str] = mapped_column(String(32), nullable=False)
    document_status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default=DocumentStatus.DRAFT.value
    )
    document_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    # integer value behind document_number, for ordering
    sequence_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="ILS")
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, server_default="0"
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    payments: Mapped[list] = mapped_column(JSONB, nullable=False, server_default="[]")

    @property
    def is_draft(self) -> bool:
        return self.document_status == DocumentStatus.DRAFT
