from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...enum.scheduler_enum import NotificationType
from ...models.system.admin_notifications import AdminNotification


def notification_exists(db: Session, notification_type: NotificationType, lease_id: UUID) -> bool:
    return db.query(AdminNotification.id).filter(
        AdminNotification.notification_type == notification_type.value,
        AdminNotification.lease_id == lease_id
    ).first() is not None


def add_notification(
    db: Session,
    notification_type: NotificationType,
    title: str,
    message: str,
    lease_id: Optional[UUID] = None,
    tenant_id: Optional[UUID] = None,
) -> AdminNotification:
    """Stage an admin notification; the caller commits it with its own change."""
    notification = AdminNotification(
        notification_type=notification_type.value,
        title=title,
        message=message,
        lease_id=lease_id,
        tenant_id=tenant_id,
    )
    db.add(notification)
    return notification
