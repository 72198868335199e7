"""Error handlers for FastAPI application."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

from bond_master.core.exceptions import (
    BondMasterException,
    InvalidDateError,
    DateOrderingError,
    SequenceConflictError,
    InvariantViolation,
    NotFoundError,
    CashflowValidationError,
    BondValidationError,
    ImportFormatError,
    DatabaseError,
)

logger = logging.getLogger(__name__)


async def bond_master_exception_handler(
    request: Request, exc: BondMasterException
) -> JSONResponse:
    """Handle BondMasterException and its subclasses."""
    logger.error(f"BondMasterException: {exc.code} - {exc.message}")

    status_code = 500

    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, (InvalidDateError, CashflowValidationError,
                          BondValidationError, ImportFormatError)):
        status_code = 400
    elif isinstance(exc, (DateOrderingError, SequenceConflictError)):
        status_code = 409
    elif isinstance(exc, InvariantViolation):
        status_code = 422
    elif isinstance(exc, DatabaseError):
        status_code = 500

    response_data = {
        "error": exc.code,
        "message": exc.message,
    }

    # Add extra fields for specific exceptions
    if isinstance(exc, DateOrderingError) and exc.conflicting_date is not None:
        response_data["date"] = exc.conflicting_date.isoformat()
    elif isinstance(exc, SequenceConflictError):
        response_data["seq"] = exc.seq
        if exc.cashflow_id is not None:
            response_data["cashflow_id"] = exc.cashflow_id
    elif isinstance(exc, InvariantViolation):
        response_data["cashflow_id"] = exc.cashflow_id
        response_data["residual"] = str(exc.residual)
    elif isinstance(exc, (CashflowValidationError, BondValidationError)) and exc.field is not None:
        response_data["field"] = exc.field

    return JSONResponse(status_code=status_code, content=response_data)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
        },
    )


def register_exception_handlers(app):
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(BondMasterException,
                              bond_master_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
