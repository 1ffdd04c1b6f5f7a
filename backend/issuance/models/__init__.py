from issuance.models.burned_number import BurnedDocumentNumber
from issuance.models.document import Document, DocumentStatus, DocumentType
from issuance.models.document_sequence import DocumentSequence
from issuance.models.tenant import Tenant
from issuance.models.tenant_member import TenantMember
from issuance.models.user import User

__all__ = [
    "BurnedDocumentNumber",
    "Document",
    "DocumentSequence",
    "DocumentStatus",
    "DocumentType",
    "Tenant",
    "TenantMember",
    "User",
]
