"""
Reconciliation Service (``ledger_modules.reconciliation.service``).

Responsibility
--------------
User-driven reconciliation: compare a balance-sheet account with a bank or
supplier statement, or an inventory item with a physical count, and post
the adjustment that brings the books to the actual figure.

Architecture position
---------------------
**Modules layer**.  Account adjustments go through
``account_reconciliation_entry``; inventory counts go through
``InventoryService.adjust_to_count`` (which writes the movement) followed
by ``inventory_reconciliation_entry``.

Invariants enforced
-------------------
* Nothing is posted when recorded and actual figures match
  (``NoAdjustmentNeededError``).
* Account differences are offset against Other Expenses (6099); inventory
  differences against Inventory Waste & Shrinkage (6060).
* An inventory adjustment writes the movement and its journal entry in one
  savepoint, so the stock cache and the GL move together.

Failure modes
-------------
* ``AccountNotFoundError``, ``IngredientNotFoundError``,
  ``LocationNotFoundError`` for unknown codes.
* ``NoAdjustmentNeededError`` when there is nothing to adjust.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from ledger_engines.posting import account_reconciliation_entry, inventory_reconciliation_entry
from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.exceptions import NoAdjustmentNeededError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import AccountType
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.ledger_selector import AccountTotals, LedgerSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_modules.inventory.models import CountAdjustment
from ledger_modules.inventory.service import InventoryService

logger = get_logger("modules.reconciliation.service")


@dataclass(frozen=True)
class StockCount:
    """One ingredient at one location, as shown on a count sheet."""

    ingredient_code: str
    ingredient_name: str
    location_code: str
    location_name: str
    quantity_on_hand: int
    avg_cost_per_unit_cents: int

    @property
    def value_cents(self) -> int:
        return self.quantity_on_hand * self.avg_cost_per_unit_cents


@dataclass(frozen=True)
class InventoryReconciliation:
    adjustment: CountAdjustment
    entry: JournalEntry | None


class ReconciliationService(BaseService):
    """Account and inventory reconciliation adjustments."""

    def __init__(
        self,
        session: Session,
        tenant: TenantContext,
        clock: Clock | None = None,
        inventory: InventoryService | None = None,
    ):
        super().__init__(session, tenant)
        self._clock = clock or SystemClock()
        self._accounts = AccountSelector(session, tenant)
        self._ledger_selector = LedgerSelector(session, tenant)
        self._ledger = LedgerService(session, tenant)
        self._inventory = inventory or InventoryService(session, tenant)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def account_balance(self, account_code: str, as_of: date | None = None) -> int:
        return self._accounts.balance_as_of(account_code, as_of or self._clock.today())

    def accounts_for_reconciliation(self, as_of: date | None = None) -> list[AccountTotals]:
        """Asset and liability accounts with their balances, ordered by code."""
        return self._ledger_selector.account_totals(
            end=as_of or self._clock.today(),
            account_types=(AccountType.ASSET, AccountType.LIABILITY),
        )

    def reconcile_account(
        self,
        account_code: str,
        actual_balance_cents: int,
        on: date,
        description: str | None = None,
    ) -> JournalEntry:
        """
        Post the adjustment bringing ``account_code`` to ``actual_balance_cents``.

        Raises:
            NoAdjustmentNeededError: the recorded balance already matches.
        """
        account = self._accounts.get_by_code(account_code)
        recorded = self._accounts.balance_as_of(account, on)
        difference = actual_balance_cents - recorded
        spec = account_reconciliation_entry(
            entry_date=on,
            account_code=account.code,
            account_name=account.name,
            is_debit_normal=account.is_debit_normal,
            difference_cents=difference,
            description=description,
            offset_code=AccountCode.OTHER_EXPENSES,
        )
        if spec is None:
            raise NoAdjustmentNeededError(account.code)

        with LogContext.bind(correlation_id=spec.reference):
            entry = self._ledger.post(spec)
            logger.info(
                "account_reconciled",
                extra={
                    "account_code": account.code,
                    "recorded_cents": recorded,
                    "actual_cents": actual_balance_cents,
                    "difference_cents": difference,
                    "entry_id": entry.id,
                },
            )
        return entry

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def stock_for_reconciliation(self) -> list[StockCount]:
        """Every ingredient at every location, zero rows included."""
        selector = self._inventory.selector
        stocked = {(item.ingredient_id, item.location_id): item for item in selector.list_items()}
        counts = []
        for ingredient in selector.list_ingredients():
            for location in selector.list_locations():
                item = stocked.get((ingredient.id, location.id))
                counts.append(
                    StockCount(
                        ingredient_code=ingredient.code,
                        ingredient_name=ingredient.name,
                        location_code=location.code,
                        location_name=location.name,
                        quantity_on_hand=item.quantity_on_hand if item else 0,
                        avg_cost_per_unit_cents=item.avg_cost_per_unit_cents if item else 0,
                    )
                )
        return counts

    def reconcile_inventory(
        self,
        ingredient_code: str,
        location_code: str,
        actual_quantity: int,
        on: date,
    ) -> InventoryReconciliation:
        """
        Bring an item to its physical count and post the value difference.

        The difference is valued at the item's average cost (ingredient cost
        for a surplus of an item never costed).  A difference worth nothing
        adjusts the quantity without a journal entry.

        Raises:
            NoAdjustmentNeededError: the cached quantity already matches.
        """
        selector = self._inventory.selector
        ingredient = selector.get_ingredient(ingredient_code)
        location = selector.get_location(location_code)
        item = selector.find_item(ingredient.id, location.id)
        on_hand = item.quantity_on_hand if item is not None else 0
        if actual_quantity == on_hand:
            raise NoAdjustmentNeededError(f"{ingredient.code} @ {location.code}", "quantities")

        with self.session.begin_nested():
            adjustment = self._inventory.adjust_to_count(
                ingredient.code, location.code, actual_quantity, on
            )
            spec = inventory_reconciliation_entry(
                on,
                ingredient.type,
                adjustment.value_difference_cents,
                ingredient.code,
                location.code,
            )
            entry = None
            if spec is not None:
                with LogContext.bind(correlation_id=spec.reference):
                    entry = self._ledger.post(spec)
                adjustment.movement.journal_entry_id = entry.id
                self.session.flush()

        logger.info(
            "inventory_reconciled",
            extra={
                "ingredient_code": ingredient.code,
                "location_code": location.code,
                "quantity_difference": adjustment.quantity_difference,
                "value_difference_cents": adjustment.value_difference_cents,
                "entry_id": entry.id if entry is not None else None,
            },
        )
        return InventoryReconciliation(adjustment=adjustment, entry=entry)
