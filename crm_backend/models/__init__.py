# Models package - normalized database models
from crm_backend.models.staff import Staff, StaffRole
from crm_backend.models.product import Product
from crm_backend.models.customer import Customer
from crm_backend.models.lead import Lead, LeadProduct, LeadIntakeForm, LeadStatus, TERMINAL_LEAD_STATUSES
from crm_backend.models.order import Order, OrderItem, OrderStatus
from crm_backend.models.em_series import EmSeries
from crm_backend.models.assignment import AssignmentCursor
from crm_backend.models.audit import AuditLog, Actions
