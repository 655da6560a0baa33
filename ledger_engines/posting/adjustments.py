"""
Adjustment and correction posting rules.

Used by user-driven reconciliation and by the verification repairs.  Each
rule is pure: the caller supplies the measured drift and receives the
entry that removes it.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec
from ledger_kernel.utils.references import order_event_reference


def account_reconciliation_entry(
    entry_date: date,
    account_code: str,
    account_name: str,
    is_debit_normal: bool,
    difference_cents: int,
    description: str | None = None,
    offset_code: str = AccountCode.OTHER_EXPENSES,
) -> EntrySpec | None:
    """
    Move an account's balance by ``difference_cents`` (actual - recorded).

    The difference is signed by the account's normal side: a positive
    difference increases the balance.  The offset goes to Other Expenses.
    """
    if difference_cents == 0:
        return None
    amount = abs(difference_cents)
    increase = difference_cents > 0
    account_debited = increase if is_debit_normal else not increase
    if account_debited:
        lines = (
            LineSpec.debit(account_code, amount, "Reconciliation adjustment"),
            LineSpec.credit(offset_code, amount, f"Reconciliation offset for {account_code}"),
        )
    else:
        lines = (
            LineSpec.debit(offset_code, amount, f"Reconciliation offset for {account_code}"),
            LineSpec.credit(account_code, amount, "Reconciliation adjustment"),
        )
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.RECONCILIATION,
        description=description or f"Reconciliation adjustment for {account_code} - {account_name}",
        reference=f"Reconciliation: {account_code}",
        lines=lines,
    )


def ar_correction_entry(
    order_id: int,
    entry_date: date,
    difference_cents: int,
    offset_code: str = AccountCode.SALES,
) -> EntrySpec | None:
    """
    Bring an order's AR to its expected amount.

    ``difference_cents`` is expected AR minus the ledger's AR for the order;
    positive debits 1100, negative credits it, against ``offset_code``.
    """
    if difference_cents == 0:
        return None
    amount = abs(difference_cents)
    if difference_cents > 0:
        lines = (
            LineSpec.debit(AccountCode.ACCOUNTS_RECEIVABLE, amount, f"Increase AR for order #{order_id}"),
            LineSpec.credit(offset_code, amount, f"AR correction offset for order #{order_id}"),
        )
    else:
        lines = (
            LineSpec.debit(offset_code, amount, f"AR correction offset for order #{order_id}"),
            LineSpec.credit(AccountCode.ACCOUNTS_RECEIVABLE, amount, f"Reduce AR for order #{order_id}"),
        )
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.OTHER,
        description=f"Correct receivable balance for order #{order_id}",
        reference=order_event_reference(order_id, "AR correction"),
        lines=lines,
    )


def deposit_transfer_entry(order_id: int, entry_date: date, amount_cents: int) -> EntrySpec | None:
    """Dr 2200 Customer Deposits / Cr 1100 AR for a delivered order."""
    if amount_cents <= 0:
        return None
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.OTHER,
        description=f"Transfer deposits to AR for delivered order #{order_id}",
        reference=order_event_reference(order_id, "deposit transfer"),
        lines=(
            LineSpec.debit(AccountCode.CUSTOMER_DEPOSITS, amount_cents, f"Clear deposits for order #{order_id}"),
            LineSpec.credit(AccountCode.ACCOUNTS_RECEIVABLE, amount_cents, f"Apply deposits to AR for order #{order_id}"),
        ),
    )


def gift_correction_entry(
    order_id: int,
    entry_date: date,
    delivery_lines: Sequence[LineSpec],
    payment_credits: Sequence[LineSpec],
) -> EntrySpec | None:
    """
    Convert sale-style delivery accounting to gift accounting.

    Lines:
        every delivery line reversed,
        Dr 6070 / Cr 1220 for the production cost (the delivery's WIP credit),
        each customer payment credit to 1100 or 2200 moved to 4100.
    """
    lines = [
        line.reversed(f"Reversal: {line.description or f'line for order #{order_id}'}")
        for line in delivery_lines
    ]

    cost = sum(
        line.credit_cents for line in delivery_lines if line.account_code == AccountCode.WIP_INVENTORY
    )
    if cost > 0:
        lines.append(
            LineSpec.debit(AccountCode.SAMPLES_AND_GIFTS, cost, f"Samples & Gifts expense for gift order #{order_id}")
        )
        lines.append(LineSpec.credit(AccountCode.WIP_INVENTORY, cost, f"Relieve WIP for gift order #{order_id}"))

    reclassifiable = (AccountCode.ACCOUNTS_RECEIVABLE, AccountCode.CUSTOMER_DEPOSITS)
    for credit in payment_credits:
        if credit.account_code not in reclassifiable or credit.credit_cents <= 0:
            continue
        lines.append(
            LineSpec.debit(credit.account_code, credit.credit_cents, f"Reverse payment credit for gift order #{order_id}")
        )
        lines.append(
            LineSpec.credit(
                AccountCode.GIFT_CONTRIBUTIONS,
                credit.credit_cents,
                f"Reclassify payment as gift contribution for order #{order_id}",
            )
        )

    if not lines:
        return None
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.OTHER,
        description=f"Correct order #{order_id}: convert sale accounting to gift/sample",
        reference=order_event_reference(order_id, "gift correction"),
        lines=tuple(lines),
    )
