import uuid

from sqlalchemy import UUID, BigInteger, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from issuance.db.base import TenantScopedBase


class BurnedDocumentNumber(TenantScopedBase):
    """A number that was allocated but never written onto a document.

    Rows here explain every gap in a sequence; they are kept for manual
    reconciliation and never reused.
    """

    __tablename__ = "burned_document_numbers"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, server_default=func.gen_random_uuid()
    )
    # tenant_id inherited from TenantScopedBase
    document_type: Mapped[str] = mapped_column(String(32), nullable=False)
    sequence_value: Mapped[int] = mapped_column(BigInteger, nullable=False)
    document_number: Mapped[str] = mapped_column(Text, nullable=False)
    # no FK: the document may not exist
    document_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
