"""Structured outcomes for numbering and draft operations.

Expected business conditions come back as ``Result.failure(code)``; only
storage faults raise.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")


class DocumentError(StrEnum):
    ALREADY_LOCKED = "sequence_already_locked"
    NOT_INITIALIZED = "sequence_not_initialized"
    NOT_LOCKED = "sequence_not_locked"
    SEQUENCE_NOT_FOUND = "sequence_not_found"
    INVALID_STARTING_NUMBER = "invalid_starting_number"
    DOCUMENT_NOT_FOUND = "document_not_found"
    NOT_A_DRAFT = "not_a_draft"
    NOT_FINAL = "document_not_final"
    FINALIZE_CONFLICT = "finalize_conflict"


_MESSAGES: dict[DocumentError, str] = {
    DocumentError.ALREADY_LOCKED: (
        "A starting number has already been set for this document type and cannot be changed."
    ),
    DocumentError.NOT_INITIALIZED: (
        "Choose a starting number for this document type before issuing documents."
    ),
    DocumentError.NOT_LOCKED: "The numbering sequence for this document type is not locked.",
    DocumentError.SEQUENCE_NOT_FOUND: "No numbering sequence exists for this document type.",
    DocumentError.INVALID_STARTING_NUMBER: "The starting number must be a positive integer.",
    DocumentError.DOCUMENT_NOT_FOUND: "Document not found.",
    DocumentError.NOT_A_DRAFT: "Only draft documents can be changed.",
    DocumentError.NOT_FINAL: "The document has not been issued yet.",
    DocumentError.FINALIZE_CONFLICT: "Finalization failed, please check the document status.",
}


def error_message(error: DocumentError) -> str:
    return _MESSAGES[error]


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    value: T | None = None
    error: DocumentError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DocumentError) -> "Result[T]":
        return cls(error=error)
