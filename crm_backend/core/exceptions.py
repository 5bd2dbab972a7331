"""
Custom exceptions for the CRM API.
Provides consistent error handling across the application.
"""
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError


class CrmException(Exception):
    """Base exception for the CRM"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(CrmException):
    """Resource not found"""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource", resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message)


class AlreadyExistsError(CrmException):
    """Resource already exists"""
    def __init__(self, resource: str = "Resource", field: str = None, value: str = None):
        if field and value:
            message = f"{resource} with {field} '{value}' already exists"
        else:
            message = f"{resource} already exists"
        super().__init__(message)


class ValidationError(CrmException):
    """Validation failed"""
    def __init__(self, message: str = "Validation failed", field: str = None):
        if field:
            message = f"Validation failed for field '{field}': {message}"
        super().__init__(message)


class ConversionValidationError(ValidationError):
    """Lead failed one or more conversion preconditions. Nothing was written."""
    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__("Cannot convert: " + "; ".join(self.errors))


class SequenceUnavailableError(CrmException):
    """EM series exists for the country but is switched off"""
    def __init__(self, country: str):
        self.country = country
        super().__init__(f"EM series for {country} is inactive")


class TransientStorageError(CrmException):
    """
    Lock-wait timeout or serialization failure.
    Nothing was committed, so the whole operation is safe to retry.
    """
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retriable = True

    def __init__(self, message: str = "Storage is busy, please retry"):
        super().__init__(message)


class ConversionConflictError(TransientStorageError):
    """A concurrent writer created the same customer; retrying links to it."""
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Conflicting concurrent update, please retry"):
        super().__init__(message)


class OrderConflictError(CrmException):
    """
    The order collides with one already stored (EM number or source lead).
    Retrying hits the same row, so this is not retriable.
    """
    status_code = status.HTTP_409_CONFLICT


# SQLSTATEs for serialization failure, deadlock and lock-wait timeout
TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03"}


def classify_storage_error(exc: Exception) -> Optional[CrmException]:
    """
    Map a storage error raised inside a transaction to its domain error.
    Only the customer phone race and lock/serialization failures are retriable.
    Returns None for errors with no domain meaning.
    """
    if isinstance(exc, IntegrityError):
        # Driver messages name the column: SQLite "customer.phone_key",
        # PostgreSQL the unique index "ix_customer_phone_key"
        detail = str(exc.orig)
        if "phone_key" in detail:
            return ConversionConflictError()
        if "em_number" in detail:
            return OrderConflictError(
                "EM number already issued; the EM series counter is behind existing orders"
            )
        if "source_lead_id" in detail:
            return OrderConflictError("Lead already has an order")
        return None
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in TRANSIENT_SQLSTATES:
            return TransientStorageError()
        if isinstance(exc, OperationalError) and "database is locked" in str(orig).lower():
            return TransientStorageError()
    return None


# HTTP Exception helpers
def raise_unauthorized(message: str = "Could not validate credentials"):
    """Raise 401 HTTPException"""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def raise_forbidden(message: str = "You don't have permission to access this resource"):
    """Raise 403 HTTPException"""
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
