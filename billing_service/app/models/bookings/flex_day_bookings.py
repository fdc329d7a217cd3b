import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shared.core.database import Base


class FlexDayBooking(Base):
    __tablename__ = "flex_day_bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    space_id = Column(Uuid(as_uuid=True), ForeignKey(
        "office_spaces.id"), nullable=False)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey(
        "tenants.id"), nullable=True)
    external_customer_id = Column(Uuid(as_uuid=True), ForeignKey(
        "external_customers.id"), nullable=True)

    booking_date = Column(Date, nullable=False)
    is_half_day = Column(Boolean, default=False, nullable=False)
    half_day_period = Column(String(16), nullable=True)  # morning|afternoon
    total_amount = Column(Numeric(14, 2), nullable=False)
    discount_amount = Column(Numeric(14, 2), default=0, nullable=False)

    status = Column(String(16), default="pending", nullable=False)
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey(
        "invoices.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    space = relationship("OfficeSpace")
