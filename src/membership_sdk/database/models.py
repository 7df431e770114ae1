"""SQLAlchemy models for membership persistence."""

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List

from sqlalchemy import (
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    Numeric,
    ForeignKey,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class SeasonStatus(str, enum.Enum):
    """Season lifecycle states."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class WorkshopStatus(str, enum.Enum):
    """Workshop availability."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class PaymentType(str, enum.Enum):
    """How a family paid."""
    CASH = "cash"
    CHECK = "check"
    TRANSFER = "transfer"
    CARD = "card"


class PaymentStatus(str, enum.Enum):
    """Payment statuses. Only COMPLETED counts toward funds received."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MembershipStatus(str, enum.Enum):
    """Derived membership status of a member for a season."""
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"


def _money(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


class Season(Base):
    """A yearly operating period with its own pricing and discount rules."""
    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start_year: Mapped[int] = mapped_column(Integer, nullable=False)
    end_year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SeasonStatus.ACTIVE.value)
    membership_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    total_donations: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    workshop_prices: Mapped[List["WorkshopPrice"]] = relationship(
        "WorkshopPrice",
        back_populates="season",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("start_year", "end_year", name="uq_seasons_years"),
        Index("ix_seasons_status", "status"),
    )

    @property
    def label(self) -> str:
        """Human-readable season label, e.g. ``2025/2026``."""
        return f"{self.start_year}/{self.end_year}"

    @property
    def is_active(self) -> bool:
        return self.status == SeasonStatus.ACTIVE.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert season to dictionary representation."""
        return {
            "id": self.id,
            "start_year": self.start_year,
            "end_year": self.end_year,
            "status": self.status,
            "membership_amount": _money(self.membership_amount),
            "discount_percent": _money(self.discount_percent),
            "total_donations": _money(self.total_donations),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Family(Base):
    """Billing and membership unit grouping one or more members."""
    __tablename__ = "families"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    members: Mapped[List["Member"]] = relationship(
        "Member",
        back_populates="family",
        cascade="all, delete-orphan",
        order_by="Member.id",
    )
    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="family",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert family to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Member(Base):
    """A person belonging to exactly one family."""
    __tablename__ = "members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    family_id: Mapped[int] = mapped_column(Integer, ForeignKey("families.id"), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_minor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    family: Mapped["Family"] = relationship("Family", back_populates="members")
    registrations: Mapped[List["Registration"]] = relationship(
        "Registration",
        back_populates="member",
        cascade="all, delete-orphan",
    )
    memberships: Mapped[List["Membership"]] = relationship(
        "Membership",
        back_populates="member",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Workshop(Base):
    """A priced activity members can register to."""
    __tablename__ = "workshops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=WorkshopStatus.ACTIVE.value)
    allow_multiple: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_per_member: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    prices: Mapped[List["WorkshopPrice"]] = relationship(
        "WorkshopPrice",
        back_populates="workshop",
        cascade="all, delete-orphan",
    )


class WorkshopPrice(Base):
    """Price of a workshop for one season."""
    __tablename__ = "workshop_prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workshop_id: Mapped[int] = mapped_column(Integer, ForeignKey("workshops.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    workshop: Mapped["Workshop"] = relationship("Workshop", back_populates="prices")
    season: Mapped["Season"] = relationship("Season", back_populates="workshop_prices")

    __table_args__ = (
        UniqueConstraint("workshop_id", "season_id", name="uq_workshop_prices_workshop_season"),
    )


class Registration(Base):
    """A member's enrollment in a workshop for a season."""
    __tablename__ = "registrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[int] = mapped_column(Integer, ForeignKey("members.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)
    workshop_id: Mapped[int] = mapped_column(Integer, ForeignKey("workshops.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    registration_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    member: Mapped["Member"] = relationship("Member", back_populates="registrations")
    workshop: Mapped["Workshop"] = relationship("Workshop")

    __table_args__ = (
        Index("ix_registrations_member_season", "member_id", "season_id"),
        Index("ix_registrations_workshop_season", "workshop_id", "season_id"),
    )


class Payment(Base):
    """A payment recorded for a family and season."""
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    family_id: Mapped[int] = mapped_column(Integer, ForeignKey("families.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentType.CASH.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    # Date the check or transfer is cashed; settles the payment when set
    cashing_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    family: Mapped["Family"] = relationship("Family", back_populates="payments")

    __table_args__ = (
        Index("ix_payments_family_season", "family_id", "season_id"),
        Index("ix_payments_status", "status"),
    )

    @property
    def settlement_date(self) -> date:
        return self.cashing_date or self.payment_date

    def to_dict(self) -> Dict[str, Any]:
        """Convert payment to dictionary representation."""
        return {
            "id": self.id,
            "family_id": self.family_id,
            "season_id": self.season_id,
            "amount": _money(self.amount),
            "payment_type": self.payment_type,
            "status": self.status,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "cashing_date": self.cashing_date.isoformat() if self.cashing_date else None,
            "reference": self.reference,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Donation(Base):
    """A donation credited to a family for a season."""
    __tablename__ = "donations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    family_id: Mapped[int] = mapped_column(Integer, ForeignKey("families.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    donation_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_donations_family_season", "family_id", "season_id"),
    )


class Membership(Base):
    """Derived per-member, per-season membership status.

    Written by the status reconciler; member withdrawal and administrative
    override are the only other writers.
    """
    __tablename__ = "memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[int] = mapped_column(Integer, ForeignKey("members.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=MembershipStatus.PENDING.value)
    family_order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    membership_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    member: Mapped["Member"] = relationship("Member", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("member_id", "season_id", name="uq_memberships_member_season"),
        Index("ix_memberships_season_status", "season_id", "status"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert membership to dictionary representation."""
        return {
            "id": self.id,
            "member_id": self.member_id,
            "season_id": self.season_id,
            "status": self.status,
            "family_order": self.family_order,
            "amount": _money(self.amount),
            "membership_date": self.membership_date.isoformat() if self.membership_date else None,
        }


class ReconciliationState(Base):
    """Concurrency guard and last totals of a family+season reconciliation."""
    __tablename__ = "reconciliation_states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    family_id: Mapped[int] = mapped_column(Integer, ForeignKey("families.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    total_due: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total_received: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    last_reconciled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("family_id", "season_id", name="uq_reconciliation_states_family_season"),
    )

    __mapper_args__ = {"version_id_col": version}
