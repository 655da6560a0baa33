"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the Chart of Accounts -- the target of
    every journal line.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (tenant_id, code) is unique: lookup-by-code is an exact match.
    - Structural fields (account_type, normal_balance) are not edited once
      the account is referenced; ChartService only updates metadata
      (name, is_cash, is_cogs, is_active) of existing accounts.

Failure modes:
    - AccountNotFoundError when a posting references a non-existent code.

Audit relevance:
    Changing account_type or normal_balance after posting would silently
    change the meaning of historical lines, so the chart service refuses it.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "debit"
    CREDIT = "credit"


class Account(TrackedBase):
    """
    Chart of Accounts entry.

    Contract:
        code is unique per tenant.  Balance = sum(debits) - sum(credits),
        sign-flipped for credit-normal accounts.

    Guarantees:
        - account_type is one of ASSET, LIABILITY, EQUITY, REVENUE, EXPENSE.
        - normal_balance is DEBIT or CREDIT.  Contra accounts (Owner's
          Drawings, Sales Discounts) carry the side opposite their type.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_tenant_type", "tenant_id", "account_type"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[str] = mapped_column(String(20), nullable=False)

    normal_balance: Mapped[str] = mapped_column(String(10), nullable=False)

    # Cash and cash-equivalent accounts feed the cash flow statement
    is_cash: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Expense accounts reported as cost of goods sold
    is_cogs: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def type(self) -> AccountType:
        return AccountType(self.account_type)

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT.value

    @property
    def is_credit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.CREDIT.value

    @property
    def label(self) -> str:
        """Human-readable label used in audit descriptions ("1000 - Cash")."""
        return f"{self.code} - {self.name}"
