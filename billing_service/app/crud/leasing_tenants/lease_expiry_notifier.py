import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session, selectinload

from ...enum.leasing_tenants_enum import LeaseStatus
from ...enum.scheduler_enum import NotificationType
from ...models.leasing_tenants.leases import Lease
from ...schemas.leasing_tenants.leases_schemas import ExpiryNotificationResult
from ..system.notifications_crud import add_notification, notification_exists

logger = logging.getLogger(__name__)

# widest window first
EXPIRY_WINDOWS = (
    (60, NotificationType.lease_expiring_60),
    (30, NotificationType.lease_expiring_30),
)


def notify_expiring_leases(db: Session, now: datetime) -> ExpiryNotificationResult:
    """One notification per lease and window for active leases ending within 60 and 30 days."""
    today = now.date()
    result = ExpiryNotificationResult()

    leases = (
        db.query(Lease)
        .options(selectinload(Lease.tenant))
        .filter(
            Lease.status == LeaseStatus.active.value,
            Lease.end_date.isnot(None),
            Lease.end_date >= today,
            Lease.end_date <= today + timedelta(days=EXPIRY_WINDOWS[0][0]),
            Lease.is_deleted == False
        )
        .order_by(Lease.end_date)
        .all()
    )

    for lease in leases:
        days_left = (lease.end_date - today).days
        tenant_name = lease.tenant.company_name if lease.tenant else str(lease.tenant_id)
        for window, notification_type in EXPIRY_WINDOWS:
            if days_left > window:
                continue
            if notification_exists(db, notification_type, lease.id):
                result.already_notified += 1
                continue
            add_notification(
                db,
                notification_type,
                title=f"Lease of {tenant_name} ends within {window} days",
                message=f"The lease of {tenant_name} ends on {lease.end_date.isoformat()} "
                        f"({days_left} day(s) left).",
                lease_id=lease.id,
                tenant_id=lease.tenant_id,
            )
            result.created += 1

    db.commit()
    logger.info("Lease expiry notifications %s", result.summary())
    return result
