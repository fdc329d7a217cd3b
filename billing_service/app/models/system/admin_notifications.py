import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.sql import func
from shared.core.database import Base


class AdminNotification(Base):
    __tablename__ = "admin_notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    notification_type = Column(String(48), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    lease_id = Column(Uuid(as_uuid=True), ForeignKey(
        "leases.id"), nullable=True)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey(
        "tenants.id"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
