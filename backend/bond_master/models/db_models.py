"""SQLAlchemy database models."""

import datetime as dt
from decimal import Decimal
from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bond_master.core.database import Base


class IndexType(Base):
    """Reference index a floating bond can be linked to."""

    __tablename__ = "index_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class DayCountConvention(Base):
    """Day-count convention reference row."""

    __tablename__ = "day_count_conventions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    convention: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)


class Bond(Base):
    """Bond master record.

    The primary key is allocated by the service (max + 1 under an exclusive
    lock), never by the database.
    """

    __tablename__ = "bonds"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False
    )
    ticker: Mapped[str] = mapped_column(String(50), nullable=False)
    issue_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    maturity_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    coupon: Mapped[Decimal | None] = mapped_column(Numeric(9, 6), nullable=True)
    index_type_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("index_types.id"),
        nullable=True
    )
    offset_days: Mapped[int] = mapped_column(Integer, default=0)
    day_count_conv_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("day_count_conventions.id"),
        nullable=True
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime,
        default=dt.datetime.utcnow
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime,
        default=dt.datetime.utcnow,
        onupdate=dt.datetime.utcnow
    )

    index_type: Mapped["IndexType | None"] = relationship(lazy="joined")
    day_count_convention: Mapped["DayCountConvention | None"] = relationship(
        lazy="joined"
    )
    cashflows: Mapped[list["Cashflow"]] = relationship(
        back_populates="bond",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Cashflow.seq"
    )

    @property
    def index_code(self) -> str | None:
        return self.index_type.code if self.index_type is not None else None

    @property
    def day_count_conv(self) -> str | None:
        if self.day_count_convention is None:
            return None
        return self.day_count_convention.convention


class Cashflow(Base):
    """One scheduled event in a bond's amortization schedule."""

    __tablename__ = "bond_cashflows"
    __table_args__ = (
        UniqueConstraint("bond_id", "seq", name="uq_bond_cashflows_bond_seq"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False
    )
    bond_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("bonds.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False)
    amort: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    residual: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime,
        default=dt.datetime.utcnow
    )

    bond: Mapped["Bond"] = relationship(back_populates="cashflows")
