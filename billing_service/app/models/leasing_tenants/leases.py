import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shared.core.database import Base


class Lease(Base):
    __tablename__ = "leases"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey(
        "tenants.id"), nullable=False)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(String(16), default="active", nullable=False)  # draft|active|ended

    vat_rate = Column(Numeric(5, 2), default=21, nullable=False)
    vat_inclusive = Column(Boolean, default=False, nullable=False)
    security_deposit = Column(Numeric(14, 2), default=0, nullable=False)

    lease_type = Column(String(16), default="standard", nullable=False)  # standard|flex
    # monthly_unlimited|daily|credit_based
    flex_pricing_model = Column(String(24), nullable=True)
    flex_monthly_rate = Column(Numeric(14, 2), nullable=True)
    flex_daily_rate = Column(Numeric(14, 2), nullable=True)
    credits_per_week = Column(Numeric(6, 2), nullable=True)
    flex_credit_rate = Column(Numeric(14, 2), nullable=True)

    # calendar year of the last rent indexation
    last_indexed_year = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, onupdate=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)

    # relationships
    tenant = relationship("Tenant", back_populates="leases")
    lease_spaces = relationship(
        "LeaseSpace", back_populates="lease", cascade="all, delete",
        order_by="LeaseSpace.created_at")


class LeaseSpace(Base):
    __tablename__ = "lease_spaces"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lease_id = Column(Uuid(as_uuid=True), ForeignKey(
        "leases.id", ondelete="CASCADE"), nullable=False)
    space_id = Column(Uuid(as_uuid=True), ForeignKey(
        "office_spaces.id"), nullable=False)
    monthly_rent = Column(Numeric(14, 2), nullable=False)
    price_per_sqm = Column(Numeric(14, 2), default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    lease = relationship("Lease", back_populates="lease_spaces")
    space = relationship("OfficeSpace")
