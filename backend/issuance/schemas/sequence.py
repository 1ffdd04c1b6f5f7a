"""Numbering sequence request/response schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from issuance.models.document import DocumentType


class SequenceInitRequest(BaseModel):
    starting_number: int = Field(..., ge=1, le=999_999_999, strict=True)
    prefix: str | None = Field(None, max_length=20, pattern=r"^[^\s]*$")


class SequenceResponse(BaseModel):
    document_type: DocumentType
    starting_number: int
    current_number: int
    prefix: str
    is_locked: bool
    locked_at: datetime | None

    model_config = {"from_attributes": True}


class SequenceStatusResponse(BaseModel):
    document_type: DocumentType
    is_locked: bool
    starting_number: int | None
    current_number: int | None
    prefix: str
    next_number: int | None
    formatted_next: str | None
    has_final_documents: bool
    requires_starting_number: bool


class NumberPreviewResponse(BaseModel):
    document_type: DocumentType
    next_number: int
    formatted: str


class BurnedNumberResponse(BaseModel):
    document_type: DocumentType
    sequence_value: int
    document_number: str
    document_id: uuid.UUID
    reason: str
    created_at: datetime

    model_config = {"from_attributes": True}
