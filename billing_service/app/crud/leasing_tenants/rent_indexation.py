import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ...core.clock import get_company_settings
from ...enum.leasing_tenants_enum import LeaseStatus, LeaseType
from ...enum.scheduler_enum import NotificationType
from ...models.leasing_tenants.leases import Lease
from ...schemas.leasing_tenants.leases_schemas import IndexationResult
from ..financials.invoice_builder import format_percentage
from ..financials.vat_calculator import HUNDRED, ZERO, round2, to_money
from ..system.notifications_crud import add_notification

logger = logging.getLogger(__name__)


def indexation_percentage(db: Session) -> Decimal:
    settings_row = get_company_settings(db)
    if not settings_row:
        return ZERO
    return to_money(settings_row.rent_indexation_percentage)


def _not_indexed_in(year: int):
    return or_(Lease.last_indexed_year.is_(None), Lease.last_indexed_year < year)


def get_indexable_leases(db: Session, year: int):
    """Active standard leases that started before this year and are not yet indexed for it."""
    return (
        db.query(Lease)
        .options(selectinload(Lease.lease_spaces), selectinload(Lease.tenant))
        .filter(
            Lease.status == LeaseStatus.active.value,
            Lease.lease_type == LeaseType.standard.value,
            Lease.start_date < date(year, 1, 1),
            _not_indexed_in(year),
            Lease.is_deleted == False
        )
        .order_by(Lease.created_at, Lease.id)
        .all()
    )


def _claim_year(db: Session, lease_id, year: int) -> bool:
    # compare-and-set on the marker; only one writer per lease and year wins
    claimed = (
        db.query(Lease)
        .filter(Lease.id == lease_id, _not_indexed_in(year))
        .update({Lease.last_indexed_year: year}, synchronize_session=False)
    )
    return claimed == 1


def index_lease(db: Session, lease: Lease, factor: Decimal) -> None:
    for lease_space in lease.lease_spaces:
        lease_space.monthly_rent = round2(to_money(lease_space.monthly_rent) * factor)
        lease_space.price_per_sqm = round2(to_money(lease_space.price_per_sqm) * factor)


def apply_rent_indexation(db: Session, now: datetime) -> IndexationResult:
    """
    Raise the rent of every eligible lease once per calendar year by the
    configured indexation percentage. The year marker, the new rents and
    the admin notification commit together per lease.
    """
    year = now.year
    pct = indexation_percentage(db)
    result = IndexationResult(year=year, percentage=pct)

    if pct <= 0:
        logger.info("Rent indexation percentage is %s, nothing to do for %d", pct, year)
        return result

    factor = 1 + pct / HUNDRED
    leases = get_indexable_leases(db, year)
    logger.info("Indexing rents by %s%% for %d, %d candidate lease(s)", pct, year, len(leases))

    for lease in leases:
        lease_id, tenant_id = lease.id, lease.tenant_id
        try:
            if not _claim_year(db, lease_id, year):
                db.rollback()
                result.skipped += 1
                continue

            index_lease(db, lease, factor)
            tenant_name = lease.tenant.company_name if lease.tenant else str(tenant_id)
            add_notification(
                db,
                NotificationType.rent_indexation_applied,
                title=f"Rent indexed for {tenant_name}",
                message=f"Rent for {year} increased by {format_percentage(pct)}% "
                        f"on {len(lease.lease_spaces)} space(s).",
                lease_id=lease_id,
                tenant_id=tenant_id,
            )
            db.commit()
        except Exception:
            db.rollback()
            result.failed += 1
            logger.exception("Rent indexation for lease %s (%d) failed", lease_id, year)
            continue

        result.indexed += 1
        result.lease_ids.append(lease_id)

    logger.info("Rent indexation %s", result.summary())
    return result
