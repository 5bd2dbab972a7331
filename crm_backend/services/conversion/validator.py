"""
Conversion preconditions.

One rule set shared by the dry-run endpoint and the conversion itself.
Every rule is checked; violations are collected, never short-circuited.
"""
from typing import Optional

from crm_backend.models.lead import LeadStatus
from crm_backend.schemas.conversion import LeadSnapshot, ConversionValidationResult


def _missing(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def validate_conversion(snapshot: LeadSnapshot) -> ConversionValidationResult:
    """Pure check of a lead snapshot. Warnings never block conversion."""
    errors = []
    warnings = []

    if snapshot.status == LeadStatus.WON:
        errors.append("Lead is already converted (status: Won)")

    if snapshot.status == LeadStatus.LOST:
        errors.append("Lead is lost and cannot be converted")

    if not snapshot.products:
        errors.append("At least one product is required")

    if _missing(snapshot.phone_key):
        errors.append("Lead phone number is required")

    intake = snapshot.intake_form
    if intake is None:
        errors.append("Lead intake form is required")
    else:
        if _missing(intake.shipping_country):
            errors.append("Shipping country is required")
        if _missing(intake.shipping_city):
            errors.append("Shipping city is required")
        if _missing(intake.shipping_address_line1):
            errors.append("Shipping address is required")
        if _missing(intake.customer_name):
            warnings.append("Customer name is not set")

    if snapshot.assigned_agent_id is None:
        warnings.append("No agent assigned to this lead")

    return ConversionValidationResult(
        can_convert=not errors,
        errors=errors,
        warnings=warnings
    )
