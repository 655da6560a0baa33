"""
Order lifecycle posting rules.

    in prep     Dr 1220 WIP (total cost) / Cr each inventory account
    delivered   sale: revenue, discount, deposit transfer and COGS
                gift: Dr 6070 Samples & Gifts / Cr 1220 WIP
    canceled    the in-prep lines with their sides swapped
    payment     Dr paid-to / Cr 1100 or 2200 (customer part)
                            / Cr partner payable (partner part)

All lifecycle entries of one order share the reference ``Order #<id>``;
payments use ``Order #<id> payment #<pid>``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date

from ledger_kernel.domain.account_codes import AccountCode, InventoryType, inventory_type_for_account
from ledger_kernel.domain.entry_types import OrderEntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec
from ledger_kernel.exceptions import MissingFieldError
from ledger_kernel.utils.references import order_payment_reference, order_reference


def in_prep_entry(
    order_id: int,
    entry_date: date,
    costs_by_type: Mapping[InventoryType, int],
) -> EntrySpec | None:
    """Move consumed stock into WIP.  None when the order consumed nothing."""
    credits = [
        LineSpec.credit(itype.inventory_account, cents, f"{itype.label} used for order #{order_id}")
        for itype in InventoryType
        if (cents := costs_by_type.get(itype, 0)) > 0
    ]
    total = sum(line.amount_cents for line in credits)
    if total == 0:
        return None
    return EntrySpec(
        entry_date=entry_date,
        entry_type=OrderEntryType.ORDER_IN_PREP,
        description=f"Move ingredients to WIP for order #{order_id}",
        reference=order_reference(order_id),
        lines=(LineSpec.debit(AccountCode.WIP_INVENTORY, total, f"WIP for order #{order_id}"), *credits),
    )


def cogs_split(in_prep_credits: Mapping[str, int]) -> dict[str, int]:
    """
    COGS per account from the in-prep credits by inventory account code.

    Kitchen stock consumed by an order rolls into ingredients COGS (5000);
    packing goes to 5010.
    """
    split: dict[str, int] = {}
    for code, cents in in_prep_credits.items():
        itype = inventory_type_for_account(code)
        if itype is None or cents <= 0:
            continue
        account = str(itype.cogs_account)
        split[account] = split.get(account, 0) + cents
    return split


def sale_delivered_entry(
    order_id: int,
    entry_date: date,
    gross_product_cents: int,
    discount_cents: int,
    shipping_cents: int,
    deposits_cents: int,
    cogs_by_account: Mapping[str, int],
) -> EntrySpec | None:
    """
    Revenue recognition for a delivered sale.

    Lines:
        Dr 1100 net revenue (gross product - discount + shipping)
        Cr 4000 gross revenue (gross product + shipping)
        Dr 4010 discount
        Dr 2200 / Cr 1100 deposits received before delivery
        Dr 5000/5010 / Cr 1220 production cost

    Payments already credited to AR are not netted here: the receivable
    left after delivery is net revenue minus every customer payment.
    """
    gross_revenue = gross_product_cents + shipping_cents
    net_revenue = gross_revenue - discount_cents
    lines: list[LineSpec] = []

    if gross_revenue > 0:
        lines.append(
            LineSpec.debit(
                AccountCode.ACCOUNTS_RECEIVABLE,
                net_revenue,
                f"Recognize AR for order #{order_id}",
            )
        )
        sales_note = "Gross sales (product + shipping)" if shipping_cents > 0 else "Gross sales revenue"
        lines.append(LineSpec.credit(AccountCode.SALES, gross_revenue, f"{sales_note} for order #{order_id}"))
        if discount_cents > 0:
            lines.append(
                LineSpec.debit(AccountCode.SALES_DISCOUNTS, discount_cents, f"Sales discount for order #{order_id}")
            )

    if deposits_cents > 0:
        lines.append(
            LineSpec.debit(
                AccountCode.CUSTOMER_DEPOSITS,
                deposits_cents,
                f"Transfer customer deposits for order #{order_id}",
            )
        )
        lines.append(
            LineSpec.credit(
                AccountCode.ACCOUNTS_RECEIVABLE,
                deposits_cents,
                f"Apply deposits to AR for order #{order_id}",
            )
        )

    cost = 0
    for code in (AccountCode.INGREDIENTS_COGS, AccountCode.PACKAGING_COGS):
        cents = cogs_by_account.get(code, 0)
        if cents > 0:
            cost += cents
            label = "Ingredients COGS" if code == AccountCode.INGREDIENTS_COGS else "Packaging COGS"
            lines.append(LineSpec.debit(code, cents, f"{label} for order #{order_id}"))
    if cost > 0:
        lines.append(LineSpec.credit(AccountCode.WIP_INVENTORY, cost, f"Relieve WIP for order #{order_id}"))

    lines = [line for line in lines if line.amount_cents != 0]
    if not lines:
        return None
    return EntrySpec(
        entry_date=entry_date,
        entry_type=OrderEntryType.ORDER_DELIVERED,
        description=f"Delivered order #{order_id}",
        reference=order_reference(order_id),
        lines=tuple(lines),
    )


def gift_delivered_entry(order_id: int, entry_date: date, cost_cents: int) -> EntrySpec | None:
    """Gift or sample: the production cost is an expense, there is no revenue."""
    if cost_cents <= 0:
        return None
    return EntrySpec(
        entry_date=entry_date,
        entry_type=OrderEntryType.ORDER_DELIVERED,
        description=f"Gift/sample order #{order_id} delivered",
        reference=order_reference(order_id),
        lines=(
            LineSpec.debit(AccountCode.SAMPLES_AND_GIFTS, cost_cents, f"Samples & Gifts expense for order #{order_id}"),
            LineSpec.credit(AccountCode.WIP_INVENTORY, cost_cents, f"Relieve WIP for gift order #{order_id}"),
        ),
    )


def canceled_entry(order_id: int, entry_date: date, in_prep_lines: Sequence[LineSpec]) -> EntrySpec:
    """Reverse the in-prep entry: same accounts and amounts, sides swapped."""
    return EntrySpec(
        entry_date=entry_date,
        entry_type=OrderEntryType.ORDER_CANCELED,
        description=f"Reverse WIP for canceled order #{order_id}",
        reference=order_reference(order_id),
        lines=tuple(
            line.reversed(f"Reversal: {line.description}" if line.description else "Reversal")
            for line in in_prep_lines
        ),
    )


def payment_entry(
    order_id: int,
    payment_id: int,
    payment_date: date,
    paid_to_code: str,
    amount_cents: int,
    is_deposit: bool,
    customer_amount_cents: int | None = None,
    partner_amount_cents: int = 0,
    partner_payable_code: str | None = None,
    partner_name: str | None = None,
    customer_name: str | None = None,
) -> EntrySpec:
    """
    Customer payment, optionally split with a partner.

    The customer part credits Customer Deposits (2200) for a deposit and
    Accounts Receivable (1100) otherwise; the partner part credits the
    partner's payable account.

    Raises:
        MissingFieldError: a partner amount without a partner payable account.
    """
    customer_amount = amount_cents if customer_amount_cents is None else customer_amount_cents
    receiving = AccountCode.CUSTOMER_DEPOSITS if is_deposit else AccountCode.ACCOUNTS_RECEIVABLE
    customer_note = (
        f"Increase Customer Deposits for order #{order_id}"
        if is_deposit
        else f"Reduce Accounts Receivable for order #{order_id}"
    )

    lines = [LineSpec.debit(paid_to_code, amount_cents, f"Payment received ({paid_to_code})")]
    if partner_amount_cents > 0:
        if not partner_payable_code:
            raise MissingFieldError("partner_payable_code")
        lines.append(LineSpec.credit(receiving, customer_amount, f"{customer_note} (customer portion)"))
        lines.append(
            LineSpec.credit(
                partner_payable_code,
                partner_amount_cents,
                f"Accounts Payable to {partner_name or 'Partner'} for order #{order_id}",
            )
        )
    else:
        lines.append(LineSpec.credit(receiving, amount_cents, customer_note))

    return EntrySpec(
        entry_date=payment_date,
        entry_type=OrderEntryType.ORDER_PAYMENT,
        description=f"Payment from {customer_name}" if customer_name else f"Payment for order #{order_id}",
        reference=order_payment_reference(order_id, payment_id),
        lines=tuple(lines),
    )
