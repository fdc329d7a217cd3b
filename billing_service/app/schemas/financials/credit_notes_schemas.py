from datetime import date
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional


class CreditNoteLineIn(BaseModel):
    description: str
    quantity: Decimal = Decimal("1")
    unit_price: Decimal


class CreditNoteCreate(BaseModel):
    tenant_id: Optional[UUID] = None
    external_customer_id: Optional[UUID] = None
    original_invoice_id: Optional[UUID] = None
    credit_date: Optional[date] = None
    reason: Optional[str] = None
    vat_rate: Decimal = Decimal("21")
    notes: Optional[str] = None
    line_items: List[CreditNoteLineIn] = Field(min_length=1)

    @model_validator(mode="after")
    def exactly_one_owner(self):
        if bool(self.tenant_id) == bool(self.external_customer_id):
            raise ValueError("Provide exactly one of tenant_id or external_customer_id")
        return self


class CreditNoteLineOut(BaseModel):
    id: UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal

    model_config = {"from_attributes": True}


class CreditNoteOut(BaseModel):
    id: UUID
    credit_note_number: str
    original_invoice_id: Optional[UUID] = None
    tenant_id: Optional[UUID] = None
    external_customer_id: Optional[UUID] = None
    credit_date: date
    reason: Optional[str] = None
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    status: str
    notes: Optional[str] = None
    line_items: List[CreditNoteLineOut] = []

    model_config = {"from_attributes": True}


class CreditApplicationRequest(BaseModel):
    invoice_id: UUID
    amount: Decimal = Field(gt=0)
    application_date: Optional[date] = None


class CreditWithoutInvoiceRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    notes: Optional[str] = None
    application_date: Optional[date] = None


class CreditApplicationOut(BaseModel):
    id: UUID
    credit_note_id: UUID
    invoice_id: Optional[UUID] = None
    applied_amount: Decimal
    application_type: str
    application_date: date
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class AvailableCreditOut(BaseModel):
    credit_note_id: UUID
    total_amount: Decimal
    applied_amount: Decimal
    available_credit: Decimal


class UnappliedCreditNoteOut(BaseModel):
    id: UUID
    credit_note_number: str
    credit_date: date
    customer_id: UUID
    customer_type: str
    customer_name: str
    total_amount: Decimal
    available_credit: Decimal
    status: str


class CustomerCreditOut(BaseModel):
    customer_id: UUID
    customer_type: str
    customer_name: str
    total_credit: Decimal
    available_credit: Decimal
    unapplied_credit_notes: int
    outstanding_invoices: int
    outstanding_amount: Decimal


class CreditRunResult(BaseModel):
    applications: int = 0
    applied_amount: Decimal = Decimal("0.00")
    failed: int = 0

    def summary(self) -> str:
        return f"applications={self.applications} applied={self.applied_amount} failed={self.failed}"
