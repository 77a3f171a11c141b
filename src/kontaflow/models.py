"""SQLAlchemy models.

Define all ORM models here. They must inherit from Base so that
Alembic's autogenerate can detect them.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kontaflow.db.session import Base  # noqa: F401  re-exported for convenience


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    auth_provider_id: Mapped[str | None] = mapped_column(String(100), unique=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    memberships: Mapped[list["UserGroupMembership"]] = relationship(
        back_populates="user", order_by="UserGroupMembership.group_id"
    )


class EconomicGroup(Base):
    __tablename__ = "economic_groups"
    __table_args__ = (
        CheckConstraint("length(name) >= 3", name="name_min_length"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    controller_tax_id: Mapped[str | None] = mapped_column(String(12))
    primary_country: Mapped[str] = mapped_column(String(2), index=True)
    base_currency: Mapped[str] = mapped_column(String(3))
    active: Mapped[bool] = mapped_column(default=True, server_default=true(), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    companies: Mapped[list["Company"]] = relationship(back_populates="group", order_by="Company.id")
    # One-to-one; None only for rows created outside the API
    configuration: Mapped["AccountingConfiguration"] = relationship(back_populates="group")
    chart_of_accounts: Mapped["ChartOfAccounts"] = relationship(back_populates="group")
    memberships: Mapped[list["UserGroupMembership"]] = relationship(back_populates="group")


class AccountingConfiguration(Base):
    __tablename__ = "accounting_configurations"

    id: Mapped[int] = mapped_column(primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("economic_groups.id"), unique=True)
    allow_postings_in_closed_period: Mapped[bool]
    require_global_approval: Mapped[bool]
    min_approval_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    allow_unbalanced_postings: Mapped[bool]
    amount_decimals: Mapped[int]
    exchange_rate_decimals: Mapped[int]

    group: Mapped["EconomicGroup"] = relationship(back_populates="configuration")


class ChartOfAccounts(Base):
    __tablename__ = "charts_of_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("economic_groups.id"), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(String(500))
    active: Mapped[bool] = mapped_column(default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    group: Mapped["EconomicGroup"] = relationship(back_populates="chart_of_accounts")


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("economic_groups.id"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    trade_name: Mapped[str | None] = mapped_column(String(200))
    tax_id: Mapped[str] = mapped_column(String(12))
    country: Mapped[str] = mapped_column(String(2))
    functional_currency: Mapped[str] = mapped_column(String(3))
    active: Mapped[bool] = mapped_column(default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    group: Mapped["EconomicGroup"] = relationship(back_populates="companies")


class UserGroupMembership(Base):
    __tablename__ = "user_group_memberships"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("economic_groups.id"), primary_key=True)
    role: Mapped[str] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="memberships")
    group: Mapped["EconomicGroup"] = relationship(back_populates="memberships")
