from .common.company_settings import CompanySettings
from .space_sites.spaces import OfficeSpace
from .leasing_tenants.tenants import Tenant, ExternalCustomer
from .leasing_tenants.leases import Lease, LeaseSpace
from .bookings.meeting_room_bookings import MeetingRoomBooking
from .bookings.flex_day_bookings import FlexDayBooking
from .financials.invoices import Invoice, InvoiceLineItem, DocumentCounter
from .financials.credit_notes import CreditNote, CreditNoteLineItem, CreditApplication
from .system.scheduled_jobs import ScheduledJob
from .system.admin_notifications import AdminNotification
