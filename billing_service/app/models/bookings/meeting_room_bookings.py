import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Time, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shared.core.database import Base


class MeetingRoomBooking(Base):
    __tablename__ = "meeting_room_bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    space_id = Column(Uuid(as_uuid=True), ForeignKey(
        "office_spaces.id"), nullable=False)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey(
        "tenants.id"), nullable=True)
    external_customer_id = Column(Uuid(as_uuid=True), ForeignKey(
        "external_customers.id"), nullable=True)

    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    total_hours = Column(Numeric(6, 2), nullable=False)
    hourly_rate = Column(Numeric(14, 2), default=0)
    # net of discount_amount
    total_amount = Column(Numeric(14, 2), nullable=False)
    discount_amount = Column(Numeric(14, 2), default=0, nullable=False)

    status = Column(String(16), default="pending", nullable=False)
    # null means unbilled
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey(
        "invoices.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    space = relationship("OfficeSpace")
