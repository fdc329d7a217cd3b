import uuid
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid, func
)
from sqlalchemy.orm import relationship
from shared.core.database import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_number = Column(String(32), nullable=False, unique=True)
    invoice_kind = Column(String(16), nullable=False)  # rent|usage|manual

    # rent invoices carry lease_id and also the lease tenant_id; classify by
    # invoice_kind or lease_id, never by tenant_id alone
    lease_id = Column(Uuid(as_uuid=True), ForeignKey(
        "leases.id"), nullable=True)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey(
        "tenants.id"), nullable=True)
    external_customer_id = Column(Uuid(as_uuid=True), ForeignKey(
        "external_customers.id"), nullable=True)

    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    invoice_month = Column(String(7), nullable=True)  # YYYY-MM

    subtotal = Column(Numeric(14, 2), nullable=False)
    vat_amount = Column(Numeric(14, 2), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False)
    vat_inclusive = Column(Boolean, default=False, nullable=False)

    # draft|sent|paid|overdue|credited
    status = Column(String(16), default="draft", nullable=False)
    applied_credit = Column(Numeric(14, 2), default=0, nullable=False)
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)

    # Relationships
    line_items = relationship(
        "InvoiceLineItem", back_populates="invoice",
        cascade="all, delete-orphan", order_by="InvoiceLineItem.position")
    lease = relationship("Lease")
    tenant = relationship("Tenant")
    external_customer = relationship("ExternalCustomer")


class InvoiceLineItem(Base):
    __tablename__ = "invoice_line_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey(
        "invoices.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False, default=1)
    unit_price = Column(Numeric(14, 2), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    # set for usage lines, points back at the billed booking
    booking_id = Column(Uuid(as_uuid=True), nullable=True)

    invoice = relationship("Invoice", back_populates="line_items")


class DocumentCounter(Base):
    __tablename__ = "document_counters"

    series = Column(String(32), primary_key=True)  # invoice|credit_note
    last_value = Column(Integer, nullable=False, default=0)
