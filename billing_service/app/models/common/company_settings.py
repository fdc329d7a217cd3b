import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, Uuid
from sqlalchemy.sql import func
from shared.core.database import Base


class CompanySettings(Base):
    __tablename__ = "company_settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_name = Column(String(200))

    # Simulated clock for testing billing cutovers
    test_mode = Column(Boolean, default=False, nullable=False)
    test_date = Column(Date, nullable=True)

    rent_indexation_percentage = Column(Numeric(5, 2), default=0, nullable=False)
    payment_term_days = Column(Integer, default=14, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
