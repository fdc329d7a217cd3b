from enum import Enum


class JobType(str, Enum):
    complete_past_bookings = "complete_past_bookings"
    generate_monthly_invoices = "generate_monthly_invoices"
    generate_usage_invoices = "generate_usage_invoices"
    apply_rent_indexation = "apply_rent_indexation"
    notify_expiring_leases = "notify_expiring_leases"
    mark_overdue_invoices = "mark_overdue_invoices"
    apply_customer_credit = "apply_customer_credit"


class JobCadence(str, Enum):
    daily = "daily"
    monthly = "monthly"
    yearly = "yearly"


class JobState(str, Enum):
    disabled = "disabled"
    idle = "idle"
    due = "due"


class NotificationType(str, Enum):
    lease_expiring_30 = "lease_expiring_30"
    lease_expiring_60 = "lease_expiring_60"
    rent_indexation_applied = "rent_indexation_applied"
