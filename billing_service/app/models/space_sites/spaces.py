import uuid
from sqlalchemy import Boolean, Column, DateTime, Numeric, String, Uuid
from sqlalchemy.sql import func
from shared.core.database import Base


class OfficeSpace(Base):
    __tablename__ = "office_spaces"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    space_number = Column(String(64), nullable=False)
    # bedrijfsruimte|kantoor|buitenterrein|diversen|Meeting Room|Flexplek
    space_type = Column(String(32))
    square_footage = Column(Numeric(10, 2))
    created_at = Column(DateTime, server_default=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)
