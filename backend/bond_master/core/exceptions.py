"""Custom exceptions for the application."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional


class BondMasterException(Exception):
    """Base exception for the bond master application."""

    def __init__(self, message: str, code: str = "error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidDateError(BondMasterException):
    """Exception raised when a cashflow date cannot be parsed."""

    def __init__(self, value: Any):
        super().__init__(f"Invalid date: {value!r}", code="invalid_date")
        self.value = value


class DateOrderingError(BondMasterException):
    """Exception raised when a date breaks the chronological schedule."""

    def __init__(self, message: str, conflicting_date: Optional[date] = None):
        super().__init__(message, code="date_ordering_error")
        self.conflicting_date = conflicting_date


class SequenceConflictError(BondMasterException):
    """Exception raised when a sequence number is already taken or out of range."""

    def __init__(self, message: str, seq: int, cashflow_id: Optional[int] = None):
        super().__init__(message, code="sequence_conflict")
        self.seq = seq
        self.cashflow_id = cashflow_id


class InvariantViolation(BondMasterException):
    """Exception raised when a residual balance would go negative."""

    def __init__(self, cashflow_id: Optional[int], residual: Decimal):
        super().__init__(
            f"Residual would become negative ({residual}) at cashflow {cashflow_id}",
            code="invariant_violation",
        )
        self.cashflow_id = cashflow_id
        self.residual = residual


class NotFoundError(BondMasterException):
    """Exception raised when a referenced record does not exist."""

    def __init__(self, message: str, code: str = "not_found"):
        super().__init__(message, code=code)


class BondNotFoundError(NotFoundError):
    """Exception raised when a bond is not found."""

    def __init__(self, bond_id: int):
        super().__init__(f"Bond not found: {bond_id}", code="bond_not_found")
        self.bond_id = bond_id


class CashflowNotFoundError(NotFoundError):
    """Exception raised when a cashflow is not found on a bond."""

    def __init__(self, bond_id: int, cashflow_id: int):
        super().__init__(
            f"Cashflow {cashflow_id} not found on bond {bond_id}",
            code="cashflow_not_found",
        )
        self.bond_id = bond_id
        self.cashflow_id = cashflow_id


class CashflowValidationError(BondMasterException):
    """Exception raised when a cashflow field is out of its domain."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, code="cashflow_validation_error")
        self.field = field


class BondValidationError(BondMasterException):
    """Exception raised when bond validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, code="bond_validation_error")
        self.field = field


class ImportFormatError(BondMasterException):
    """Exception raised when a bulk cashflow upload cannot be read."""

    def __init__(self, message: str):
        super().__init__(message, code="import_format_error")


class DatabaseError(BondMasterException):
    """Exception raised when a database operation fails."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message, code="database_error")
        self.operation = operation
