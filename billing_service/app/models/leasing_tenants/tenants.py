import uuid
from sqlalchemy import Boolean, Column, DateTime, Numeric, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shared.core.database import Base


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_name = Column(String(200), nullable=False)
    name = Column(String(200))
    email = Column(String(200))
    # null means no discount
    lease_discount_percentage = Column(Numeric(5, 2), nullable=True)
    meeting_discount_percentage = Column(Numeric(5, 2), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)

    leases = relationship("Lease", back_populates="tenant")


class ExternalCustomer(Base):
    __tablename__ = "external_customers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_name = Column(String(200), nullable=False)
    contact_name = Column(String(200))
    email = Column(String(200))
    meeting_discount_percentage = Column(Numeric(5, 2), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)
