from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from shared.core.schemas import CommonQueryParams

INVOICE_MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class VatBreakdown(BaseModel):
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal


class InvoiceLineItemOut(BaseModel):
    id: UUID
    position: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal
    booking_id: Optional[UUID] = None

    model_config = {"from_attributes": True}


class InvoiceOut(BaseModel):
    id: UUID
    invoice_number: str
    invoice_kind: str
    lease_id: Optional[UUID] = None
    tenant_id: Optional[UUID] = None
    external_customer_id: Optional[UUID] = None
    invoice_date: date
    due_date: date
    invoice_month: Optional[str] = None
    subtotal: Decimal
    vat_amount: Decimal
    amount: Decimal
    vat_rate: Decimal
    vat_inclusive: bool
    status: str
    applied_credit: Decimal
    balance_due: Optional[Decimal] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    line_items: List[InvoiceLineItemOut] = []

    model_config = {"from_attributes": True}


class InvoicesRequest(CommonQueryParams):
    status: Optional[str] = None
    invoice_kind: Optional[str] = None
    invoice_month: Optional[str] = None


class InvoicesResponse(BaseModel):
    invoices: List[InvoiceOut]
    total: int

    model_config = {"from_attributes": True}


class InvoiceGenerationRequest(BaseModel):
    invoice_month: Optional[str] = Field(
        default=None, pattern=INVOICE_MONTH_PATTERN)


class GenerationResult(BaseModel):
    invoice_month: str
    created: int = 0
    skipped: int = 0
    failed: int = 0
    link_failures: int = 0
    invoice_ids: List[UUID] = []

    def summary(self) -> str:
        text = f"{self.invoice_month}: created={self.created} skipped={self.skipped} failed={self.failed}"
        if self.link_failures:
            text += f" link_failures={self.link_failures}"
        return text


class InvoicePaymentRequest(BaseModel):
    paid_at: Optional[datetime] = None

    @field_validator("paid_at")
    @classmethod
    def strip_timezone(cls, value):
        # stored as naive local time
        if value is not None and value.tzinfo is not None:
            return value.replace(tzinfo=None)
        return value
