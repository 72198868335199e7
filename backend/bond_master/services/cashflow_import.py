"""Parsing of bulk cashflow uploads."""

import io
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

import pandas as pd

from bond_master.core.exceptions import ImportFormatError
from bond_master.models.schemas import CashflowCreate

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"date", "amort"}

# seq and residual may be present in exported files; both are derived on import
IGNORED_COLUMNS = {"seq", "residual", "id", "bond_id", "created_at"}


def parse_cashflow_csv(content: bytes) -> List[CashflowCreate]:
    """Read a CSV upload into cashflow inputs, keeping file order.

    Args:
        content: Raw CSV bytes with a header row

    Returns:
        One CashflowCreate per non-empty data row

    Raises:
        ImportFormatError: If the file cannot be read, lacks required
            columns or holds non-numeric amounts
    """
    try:
        df = pd.read_csv(io.BytesIO(content), dtype=str, skipinitialspace=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Could not read CSV upload: {e}") from e

    df.columns = [str(column).strip().lower() for column in df.columns]
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ImportFormatError(
            f"Missing required columns: {', '.join(sorted(missing))}")

    ignored = IGNORED_COLUMNS & set(df.columns)
    if ignored:
        logger.debug(f"Ignoring derived columns in upload: {sorted(ignored)}")

    df = df.dropna(how="all")
    items = []
    # header is line 1
    for line, (_, row) in enumerate(df.iterrows(), start=2):
        items.append(CashflowCreate(
            date=_cell(row, "date") or "",
            rate=_to_decimal(_cell(row, "rate"), "rate", line, Decimal("0")),
            amort=_to_decimal(_cell(row, "amort"), "amort", line),
            amount=_to_decimal(_cell(row, "amount"), "amount", line, Decimal("0")),
        ))

    logger.info(f"Parsed {len(items)} cashflows from CSV upload")
    return items


def _cell(row: pd.Series, column: str) -> Optional[str]:
    value = row.get(column)
    if value is None or pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def _to_decimal(
    value: Optional[str], column: str, line: int, default: Optional[Decimal] = None
) -> Decimal:
    if value is None:
        if default is None:
            raise ImportFormatError(f"Line {line}: missing value for {column}")
        return default
    try:
        number = Decimal(value.rstrip("%"))
    except InvalidOperation:
        number = None
    if number is None or not number.is_finite():
        raise ImportFormatError(
            f"Line {line}: {column} value {value!r} is not a number")
    # percentages such as "5%" are stored as fractions
    return number / 100 if value.endswith("%") else number
