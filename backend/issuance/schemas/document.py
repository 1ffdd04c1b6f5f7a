"""Document request/response schemas.

Payment rows are a tagged union keyed by ``method``; each variant carries
only the fields that method needs.
"""

import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator

from issuance.models.document import DocumentStatus, DocumentType

CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


class _PaymentBase(BaseModel):
    payment_date: date
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: str = Field("ILS", min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        if not CURRENCY_PATTERN.match(v):
            raise ValueError("Currency must be a 3-letter uppercase ISO 4217 code")
        return v


class CashPayment(_PaymentBase):
    method: Literal["cash"]


class BankTransferPayment(_PaymentBase):
    method: Literal["bank_transfer"]
    bank_name: str | None = Field(None, max_length=100)
    branch: str | None = Field(None, max_length=20)
    account_number: str | None = Field(None, max_length=30)


class CreditCardPayment(_PaymentBase):
    method: Literal["credit_card"]
    card_type: Literal["visa", "mastercard", "isracard", "amex", "diners", "other"] | None = None
    last_digits: str | None = Field(None, pattern=r"^\d{4}$")
    installments: int = Field(1, ge=1, le=36)
    deal_type: Literal["regular", "payments", "credit", "deferred"] = "regular"


class CheckPayment(_PaymentBase):
    method: Literal["check"]
    bank_name: str | None = Field(None, max_length=100)
    branch: str | None = Field(None, max_length=20)
    account_number: str | None = Field(None, max_length=30)
    check_number: str = Field(..., min_length=1, max_length=30)


class DigitalWalletPayment(_PaymentBase):
    method: Literal["digital_wallet"]
    provider: str = Field(..., min_length=1, max_length=50)  # Bit, PayBox, PayPal...
    payer_account: str | None = Field(None, max_length=100)
    transaction_reference: str | None = Field(None, max_length=100)


class WithholdingPayment(_PaymentBase):
    method: Literal["withholding"]
    description: str | None = Field(None, max_length=255)


Payment = Annotated[
    CashPayment
    | BankTransferPayment
    | CreditCardPayment
    | CheckPayment
    | DigitalWalletPayment
    | WithholdingPayment,
    Field(discriminator="method"),
]


class DocumentCreate(BaseModel):
    document_type: DocumentType
    customer_name: str = Field(..., min_length=1, max_length=255)
    issue_date: date | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    total_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    description: str | None = Field(None, max_length=2000)
    internal_notes: str | None = Field(None, max_length=2000)
    customer_notes: str | None = Field(None, max_length=2000)
    payments: list[Payment] = Field(default_factory=list)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str | None) -> str | None:
        if v is not None and not CURRENCY_PATTERN.match(v):
            raise ValueError("Currency must be a 3-letter uppercase ISO 4217 code")
        return v


class DocumentUpdate(BaseModel):
    """Partial update of a draft. Type, status and number are not editable."""

    customer_name: str | None = Field(None, min_length=1, max_length=255)
    issue_date: date | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    total_amount: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    description: str | None = Field(None, max_length=2000)
    internal_notes: str | None = Field(None, max_length=2000)
    customer_notes: str | None = Field(None, max_length=2000)
    payments: list[Payment] | None = None

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str | None) -> str | None:
        if v is not None and not CURRENCY_PATTERN.match(v):
            raise ValueError("Currency must be a 3-letter uppercase ISO 4217 code")
        return v

    @field_validator("customer_name", "currency", "total_amount", "payments")
    @classmethod
    def reject_null(cls, v):
        # these columns are NOT NULL; omit the field instead of sending null
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class DocumentResponse(BaseModel):
    id: uuid.UUID
    document_type: DocumentType
    document_status: DocumentStatus
    document_number: str | None
    finalized_at: datetime | None
    customer_name: str
    issue_date: date | None
    currency: str
    total_amount: Decimal
    description: str | None
    internal_notes: str | None
    customer_notes: str | None
    payments: list[Payment]
    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class DocumentListItem(BaseModel):
    id: uuid.UUID
    document_type: DocumentType
    document_status: DocumentStatus
    document_number: str | None
    customer_name: str
    issue_date: date | None
    currency: str
    total_amount: Decimal
    created_at: datetime
    finalized_at: datetime | None

    model_config = {"from_attributes": True}


class IssuedDocumentResponse(BaseModel):
    """Read-only view handed to renderers; only final documents qualify."""

    id: uuid.UUID
    document_type: DocumentType
    document_number: str
    finalized_at: datetime
    customer_name: str
    issue_date: date | None
    currency: str
    total_amount: Decimal
    description: str | None
    customer_notes: str | None
    payments: list[Payment]

    model_config = {"from_attributes": True}


class FinalizeResponse(BaseModel):
    id: uuid.UUID
    document_type: DocumentType
    document_status: DocumentStatus
    document_number: str
    finalized_at: datetime
    already_final: bool = False
