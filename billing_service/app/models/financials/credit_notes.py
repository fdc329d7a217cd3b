import uuid
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid, func
)
from sqlalchemy.orm import relationship
from shared.core.database import Base


class CreditNote(Base):
    __tablename__ = "credit_notes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    credit_note_number = Column(String(32), nullable=False, unique=True)
    original_invoice_id = Column(Uuid(as_uuid=True), ForeignKey(
        "invoices.id"), nullable=True)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey(
        "tenants.id"), nullable=True)
    external_customer_id = Column(Uuid(as_uuid=True), ForeignKey(
        "external_customers.id"), nullable=True)

    credit_date = Column(Date, nullable=False)
    reason = Column(Text)
    subtotal = Column(Numeric(14, 2), nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False)
    vat_amount = Column(Numeric(14, 2), nullable=False)
    total_amount = Column(Numeric(14, 2), nullable=False)
    status = Column(String(16), default="issued", nullable=False)  # draft|issued|applied
    notes = Column(Text)

    created_at = Column(DateTime, server_default=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)

    line_items = relationship(
        "CreditNoteLineItem", back_populates="credit_note", cascade="all, delete-orphan")
    applications = relationship(
        "CreditApplication", back_populates="credit_note")
    tenant = relationship("Tenant")
    external_customer = relationship("ExternalCustomer")


class CreditNoteLineItem(Base):
    __tablename__ = "credit_note_line_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    credit_note_id = Column(Uuid(as_uuid=True), ForeignKey(
        "credit_notes.id", ondelete="CASCADE"), nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False, default=1)
    unit_price = Column(Numeric(14, 2), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)

    credit_note = relationship("CreditNote", back_populates="line_items")


class CreditApplication(Base):
    __tablename__ = "credit_note_applications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    credit_note_id = Column(Uuid(as_uuid=True), ForeignKey(
        "credit_notes.id"), nullable=False)
    # null for refunds and manual applications
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey(
        "invoices.id"), nullable=True)
    applied_amount = Column(Numeric(14, 2), nullable=False)
    application_type = Column(String(24), nullable=False, default="invoice_credit")
    application_date = Column(Date, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, server_default=func.now())

    credit_note = relationship("CreditNote", back_populates="applications")
    invoice = relationship("Invoice")
