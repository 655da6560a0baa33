"""
Inventory Module Service (``ledger_modules.inventory.service``).

Responsibility
--------------
Records stock movements, keeps the per-location stock cache and its
weighted moving-average cost current, and posts the journal entries that
purchases, returns, manual usage and write-offs produce.

Architecture
------------
Layer: **Modules** -- stateful orchestration wrapper.

1. Calls ``ledger_engines.costing`` for average-cost arithmetic.
2. Calls ``ledger_engines.posting`` to turn the event into an EntrySpec.
3. Calls ``LedgerService`` to validate and persist the entry.

Invariants
----------
- Every operation runs in a savepoint: the movement, the stock update and
  the journal entry are written together or not at all.
- The service flushes and never commits; the caller owns the transaction.
- Order consumption posts no entry of its own: the order lifecycle moves
  its cost into WIP with a single in-prep entry.

Failure Modes
-------------
- ``IngredientNotFoundError`` / ``LocationNotFoundError`` for unknown codes.
- ``InvalidQuantityError`` for a non-positive quantity.
- ``InsufficientStockError`` for write-offs, transfers and returns that
  exceed the stock on hand.  Usage is not stock-checked.

Audit Relevance
---------------
The movement history is the authority for quantities.  The verification
engine compares it with the cache, and the cache valuation with the GL
inventory accounts.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from sqlalchemy.orm import Session

from ledger_engines import costing
from ledger_engines.costing import ItemValuation
from ledger_engines.posting import (
    multi_purchase_entry,
    purchase_entry,
    return_entry,
    usage_entry,
    write_off_entry,
)
from ledger_kernel.domain.account_codes import AccountCode, InventoryType
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    MovementNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.utils.currency import format_cents
from ledger_modules.inventory.models import (
    CountAdjustment,
    MovementResult,
    OrderConsumption,
    PurchaseLine,
    PurchaseListResult,
    QuantityCorrection,
    RecipeLine,
)
from ledger_modules.inventory.orm import (
    Ingredient,
    InventoryItem,
    InventoryMovement,
    Location,
    MovementType,
)
from ledger_modules.inventory.selector import InventorySelector

logger = get_logger("modules.inventory.service")

ORDER_SOURCE = "order"
RECONCILIATION_SOURCE = "reconciliation"


def purchase_reference(ingredient_code: str, location_code: str) -> str:
    return f"Purchase {ingredient_code} @ {location_code}"


class InventoryService(BaseService):
    """
    Stock movements and their accounting.

    Contract
    --------
    Each public method takes ingredient and location codes, applies the
    movement to the cache through the costing engine, and posts the
    resulting entry through ``LedgerService`` when the event has one.

    Non-goals
    ---------
    - Does NOT implement costing arithmetic (``ledger_engines.costing``).
    - Does NOT build journal lines (``ledger_engines.posting``).
    """

    def __init__(self, session: Session, tenant: TenantContext):
        super().__init__(session, tenant)
        self.selector = InventorySelector(session, tenant)
        self._ledger = LedgerService(session, tenant)

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def create_ingredient(
        self,
        code: str,
        name: str,
        inventory_type: InventoryType = InventoryType.INGREDIENTS,
        cost_per_unit_cents: int = 0,
        unit: str = "unit",
    ) -> Ingredient:
        ingredient = Ingredient(
            tenant_id=self.tenant_id,
            code=code,
            name=name,
            unit=unit,
            inventory_type=InventoryType(inventory_type).value,
            cost_per_unit_cents=cost_per_unit_cents,
        )
        self.session.add(ingredient)
        self.session.flush()
        return ingredient

    def create_location(self, code: str, name: str) -> Location:
        location = Location(tenant_id=self.tenant_id, code=code, name=name)
        self.session.add(location)
        self.session.flush()
        return location

    def get_or_create_item(self, ingredient: Ingredient, location: Location) -> InventoryItem:
        item = self.selector.find_item(ingredient.id, location.id)
        if item is None:
            item = InventoryItem(
                tenant_id=self.tenant_id,
                ingredient_id=ingredient.id,
                location_id=location.id,
                quantity_on_hand=0,
                avg_cost_per_unit_cents=0,
            )
            item.ingredient = ingredient
            item.location = location
            self.session.add(item)
            self.session.flush()
        return item

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _valuation(item: InventoryItem) -> ItemValuation:
        return ItemValuation(item.quantity_on_hand, item.avg_cost_per_unit_cents)

    @staticmethod
    def _apply(item: InventoryItem, valuation: ItemValuation) -> None:
        item.quantity_on_hand = valuation.quantity
        item.avg_cost_per_unit_cents = valuation.avg_cost_cents

    @staticmethod
    def _require_positive(ingredient_code: str, quantity: int) -> None:
        if quantity <= 0:
            raise InvalidQuantityError(ingredient_code, quantity)

    @staticmethod
    def _require_stock(item: InventoryItem, quantity: int) -> None:
        if item.quantity_on_hand < quantity:
            raise InsufficientStockError(
                item.ingredient.code, item.location.code, item.quantity_on_hand, quantity
            )

    def _movement(self, ingredient: Ingredient, movement_type: str, quantity: int, **fields) -> InventoryMovement:
        movement = InventoryMovement(
            tenant_id=self.tenant_id,
            ingredient_id=ingredient.id,
            movement_type=movement_type,
            quantity=quantity,
            **fields,
        )
        movement.ingredient = ingredient
        self.session.add(movement)
        return movement

    def _receive(self, ingredient: Ingredient, location: Location, quantity: int, total_cost_cents: int) -> InventoryItem:
        item = self.get_or_create_item(ingredient, location)
        self._apply(item, costing.receive(self._valuation(item), quantity, total_cost_cents))
        return item

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def record_purchase(
        self,
        ingredient_code: str,
        location_code: str,
        quantity: int,
        total_cost_cents: int,
        purchase_date: date,
        paid_from_code: str = AccountCode.CASH,
        reference: str | None = None,
        description: str | None = None,
    ) -> MovementResult:
        """
        Receive stock and post Dr inventory / Cr paid-from.

        The item's average cost is re-weighted with the purchase; an empty
        item takes the purchase unit cost.
        """
        self._require_positive(ingredient_code, quantity)
        ingredient = self.selector.get_ingredient(ingredient_code)
        location = self.selector.get_location(location_code)

        with self.session.begin_nested():
            item = self._receive(ingredient, location, quantity, total_cost_cents)
            entry = None
            if total_cost_cents > 0:
                entry = self._ledger.post(
                    purchase_entry(
                        entry_date=purchase_date,
                        inventory_type=ingredient.type,
                        total_cost_cents=total_cost_cents,
                        reference=reference or purchase_reference(ingredient.code, location.code),
                        description=description
                        or f"Purchase of {quantity} {ingredient.code} into {location.code}",
                        paid_from_code=paid_from_code,
                    )
                )
            movement = self._movement(
                ingredient,
                MovementType.PURCHASE,
                quantity,
                to_location_id=location.id,
                unit_cost_cents=costing.unit_cost_from_total(quantity, total_cost_cents),
                total_cost_cents=total_cost_cents,
                movement_date=purchase_date,
                note=f"Purchase into {location.code}",
                journal_entry_id=entry.id if entry is not None else None,
            )
            self.session.flush()

        logger.info(
            "inventory_purchase_recorded",
            extra={
                "ingredient": ingredient.code,
                "location": location.code,
                "quantity": quantity,
                "total": format_cents(total_cost_cents),
                "avg_cost_cents": item.avg_cost_per_unit_cents,
                "entry_id": entry.id if entry is not None else None,
            },
        )
        return MovementResult(movement=movement, item=item, entry=entry)

    def record_purchase_list(
        self,
        location_code: str,
        lines: Sequence[PurchaseLine],
        purchase_date: date,
        paid_from_code: str = AccountCode.CASH,
        reference: str | None = None,
        description: str | None = None,
    ) -> PurchaseListResult:
        """Receive a shopping list and post one entry split by inventory type."""
        location = self.selector.get_location(location_code)
        for line in lines:
            self._require_positive(line.ingredient_code, line.quantity)

        with self.session.begin_nested():
            costs: dict[InventoryType, int] = {}
            received = []
            for line in lines:
                ingredient = self.selector.get_ingredient(line.ingredient_code)
                self._receive(ingredient, location, line.quantity, line.total_cost_cents)
                costs[ingredient.type] = costs.get(ingredient.type, 0) + line.total_cost_cents
                received.append((ingredient, line))

            spec = multi_purchase_entry(
                entry_date=purchase_date,
                costs_by_type=costs,
                reference=reference or f"Purchase list @ {location.code}",
                description=description or f"Purchase of {len(lines)} item(s) into {location.code}",
                paid_from_code=paid_from_code,
            )
            entry = self._ledger.post(spec) if spec is not None else None

            movements = tuple(
                self._movement(
                    ingredient,
                    MovementType.PURCHASE,
                    line.quantity,
                    to_location_id=location.id,
                    unit_cost_cents=costing.unit_cost_from_total(line.quantity, line.total_cost_cents),
                    total_cost_cents=line.total_cost_cents,
                    movement_date=purchase_date,
                    note=f"Purchase into {location.code}",
                    journal_entry_id=entry.id if entry is not None else None,
                )
                for ingredient, line in received
            )
            self.session.flush()

        logger.info(
            "inventory_purchase_list_recorded",
            extra={
                "location": location.code,
                "line_count": len(lines),
                "total": format_cents(sum(costs.values())),
                "entry_id": entry.id if entry is not None else None,
            },
        )
        return PurchaseListResult(movements=movements, entry=entry)

    def record_return(
        self,
        ingredient_code: str,
        location_code: str,
        quantity: int,
        return_date: date,
        refunded_to_code: str = AccountCode.CASH,
    ) -> MovementResult:
        """
        Send stock back to the supplier for a refund at average cost.

        Recorded as a purchase movement with a negative quantity so the
        derived quantity and the valuation both drop by the returned stock.
        """
        self._require_positive(ingredient_code, quantity)
        ingredient = self.selector.get_ingredient(ingredient_code)
        location = self.selector.get_location(location_code)

        with self.session.begin_nested():
            item = self.get_or_create_item(ingredient, location)
            self._require_stock(item, quantity)
            unit_cost = item.avg_cost_per_unit_cents
            valuation, refund = costing.issue(self._valuation(item), quantity)
            self._apply(item, valuation)
            entry = None
            if refund > 0:
                entry = self._ledger.post(
                    return_entry(
                        entry_date=return_date,
                        inventory_type=ingredient.type,
                        total_cost_cents=refund,
                        reference=f"Return {ingredient.code} @ {location.code}",
                        description=f"Return of {quantity} {ingredient.code} from {location.code}",
                        refunded_to_code=refunded_to_code,
                    )
                )
            movement = self._movement(
                ingredient,
                MovementType.PURCHASE,
                -quantity,
                to_location_id=location.id,
                unit_cost_cents=unit_cost,
                total_cost_cents=-refund,
                movement_date=return_date,
                note=f"Return to supplier from {location.code}",
                journal_entry_id=entry.id if entry is not None else None,
            )
            self.session.flush()

        logger.info(
            "inventory_return_recorded",
            extra={
                "ingredient": ingredient.code,
                "location": location.code,
                "quantity": quantity,
                "refund": format_cents(refund),
            },
        )
        return MovementResult(movement=movement, item=item, entry=entry)

    def delete_purchase(self, movement_id: int) -> None:
        """
        Undo a purchase: remove its stock, its journal entry and the movement.

        The average cost is kept unless the item is emptied, in which case
        it resets to zero.

        Raises:
            MovementNotFoundError: no purchase movement with that id.
        """
        movement = self.session.get(InventoryMovement, movement_id)
        if (
            movement is None
            or movement.tenant_id != self.tenant_id
            or movement.movement_type != MovementType.PURCHASE
        ):
            raise MovementNotFoundError(movement_id, MovementType.PURCHASE)

        with self.session.begin_nested():
            item = self.selector.find_item(movement.ingredient_id, movement.to_location_id)
            if item is not None:
                valuation, _ = costing.issue(self._valuation(item), movement.quantity)
                self._apply(item, ItemValuation(max(valuation.quantity, 0), valuation.avg_cost_cents))
            entry_id = movement.journal_entry_id
            self.session.delete(movement)
            self.session.flush()
            # a purchase list shares one entry between several movements
            if entry_id is not None and not self.selector.movements_for_entry(entry_id):
                self._ledger.delete(JournalSelector(self.session, self.tenant).get(entry_id))

        logger.info(
            "inventory_purchase_deleted",
            extra={"movement_id": movement_id, "entry_id": entry_id},
        )

    # ------------------------------------------------------------------
    # Outflows
    # ------------------------------------------------------------------

    def record_usage(
        self,
        ingredient_code: str,
        location_code: str,
        quantity: int,
        movement_date: date,
        source_type: str | None = None,
        source_id: int | None = None,
    ) -> MovementResult:
        """
        Consume stock at its current average cost.

        Manual usage posts Dr 5000/5010 (kitchen: 6099) / Cr inventory.
        Usage with source_type "order" posts nothing here; the order's
        in-prep entry carries the cost into WIP.
        """
        self._require_positive(ingredient_code, quantity)
        ingredient = self.selector.get_ingredient(ingredient_code)
        location = self.selector.get_location(location_code)

        with self.session.begin_nested():
            item = self.get_or_create_item(ingredient, location)
            unit_cost = item.avg_cost_per_unit_cents
            valuation, total = costing.issue(self._valuation(item), quantity)
            self._apply(item, valuation)

            entry = None
            if source_type != ORDER_SOURCE:
                spec = usage_entry(
                    entry_date=movement_date,
                    inventory_type=ingredient.type,
                    total_cost_cents=total,
                    ingredient_name=ingredient.code,
                    location_name=location.code,
                )
                if spec is not None:
                    entry = self._ledger.post(spec)

            movement = self._movement(
                ingredient,
                MovementType.USAGE,
                quantity,
                from_location_id=location.id,
                unit_cost_cents=unit_cost,
                total_cost_cents=total,
                movement_date=movement_date,
                source_type=source_type,
                source_id=source_id,
                note=f"Usage from {location.code}",
                journal_entry_id=entry.id if entry is not None else None,
            )
            self.session.flush()

        logger.info(
            "inventory_usage_recorded",
            extra={
                "ingredient": ingredient.code,
                "location": location.code,
                "quantity": quantity,
                "total": format_cents(total),
                "source_type": source_type,
                "source_id": source_id,
            },
        )
        return MovementResult(movement=movement, item=item, entry=entry)

    def record_write_off(
        self,
        ingredient_code: str,
        location_code: str,
        quantity: int,
        movement_date: date,
        note: str | None = None,
    ) -> MovementResult:
        """Discard spoiled or damaged stock: Dr 6060 / Cr inventory at average cost."""
        self._require_positive(ingredient_code, quantity)
        ingredient = self.selector.get_ingredient(ingredient_code)
        location = self.selector.get_location(location_code)

        with self.session.begin_nested():
            item = self.get_or_create_item(ingredient, location)
            self._require_stock(item, quantity)
            unit_cost = item.avg_cost_per_unit_cents
            valuation, total = costing.issue(self._valuation(item), quantity)
            self._apply(item, valuation)

            spec = write_off_entry(
                entry_date=movement_date,
                inventory_type=ingredient.type,
                total_cost_cents=total,
                ingredient_name=ingredient.code,
                location_name=location.code,
                note=note,
            )
            entry = self._ledger.post(spec) if spec is not None else None

            movement = self._movement(
                ingredient,
                MovementType.WRITE_OFF,
                quantity,
                from_location_id=location.id,
                unit_cost_cents=unit_cost,
                total_cost_cents=total,
                movement_date=movement_date,
                note=note or f"Write-off from {location.code}",
                journal_entry_id=entry.id if entry is not None else None,
            )
            self.session.flush()

        logger.info(
            "inventory_write_off_recorded",
            extra={
                "ingredient": ingredient.code,
                "location": location.code,
                "quantity": quantity,
                "total": format_cents(total),
            },
        )
        return MovementResult(movement=movement, item=item, entry=entry)

    def transfer(
        self,
        ingredient_code: str,
        from_location_code: str,
        to_location_code: str,
        quantity: int,
        movement_date: date,
        source_type: str | None = None,
        source_id: int | None = None,
    ) -> MovementResult:
        """
        Move stock between locations at the origin's average cost.

        No journal entry: both locations sit in the same GL account.
        Returns the destination item.
        """
        self._require_positive(ingredient_code, quantity)
        ingredient = self.selector.get_ingredient(ingredient_code)
        from_location = self.selector.get_location(from_location_code)
        to_location = self.selector.get_location(to_location_code)

        with self.session.begin_nested():
            source = self.get_or_create_item(ingredient, from_location)
            self._require_stock(source, quantity)
            unit_cost = source.avg_cost_per_unit_cents
            valuation, total = costing.issue(self._valuation(source), quantity)
            self._apply(source, valuation)
            destination = self._receive(ingredient, to_location, quantity, total)

            movement = self._movement(
                ingredient,
                MovementType.TRANSFER,
                quantity,
                from_location_id=from_location.id,
                to_location_id=to_location.id,
                unit_cost_cents=unit_cost,
                total_cost_cents=total,
                movement_date=movement_date,
                source_type=source_type,
                source_id=source_id,
                note=f"Transfer {quantity} from {from_location.code} to {to_location.code}",
            )
            self.session.flush()

        logger.info(
            "inventory_transfer_recorded",
            extra={
                "ingredient": ingredient.code,
                "from_location": from_location.code,
                "to_location": to_location.code,
                "quantity": quantity,
                "total": format_cents(total),
            },
        )
        return MovementResult(movement=movement, item=destination)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def consume_for_order(
        self,
        order_id: int,
        recipe: Iterable[RecipeLine],
        location_code: str,
        movement_date: date,
    ) -> OrderConsumption:
        """Record usage of every recipe line, tagged with the order as source."""
        movements = []
        costs: dict[InventoryType, int] = {}
        for line in recipe:
            if line.quantity <= 0:
                continue
            result = self.record_usage(
                line.ingredient_code,
                location_code,
                line.quantity,
                movement_date,
                source_type=ORDER_SOURCE,
                source_id=order_id,
            )
            movements.append(result.movement)
            itype = result.movement.ingredient.type
            costs[itype] = costs.get(itype, 0) + result.total_cost_cents
        return OrderConsumption(order_id=order_id, movements=tuple(movements), costs_by_type=costs)

    def order_consumption(self, order_id: int) -> OrderConsumption:
        """Consumption already recorded for an order, valued as recorded."""
        movements = tuple(
            m
            for m in self.selector.movements_for_source(ORDER_SOURCE, order_id)
            if m.movement_type == MovementType.USAGE
        )
        costs: dict[InventoryType, int] = {}
        for movement in movements:
            itype = movement.ingredient.type
            costs[itype] = costs.get(itype, 0) + movement.total_cost_cents
        return OrderConsumption(order_id=order_id, movements=movements, costs_by_type=costs)

    def reverse_order_consumption(self, order_id: int) -> int:
        """
        Return an order's consumed stock to where it came from.

        Each usage movement is valued back in at its recorded cost and
        deleted.  Returns the number of movements reversed.
        """
        movements = [
            m
            for m in self.selector.movements_for_source(ORDER_SOURCE, order_id)
            if m.movement_type == MovementType.USAGE
        ]
        with self.session.begin_nested():
            for movement in movements:
                location = self.session.get(Location, movement.from_location_id)
                self._receive(movement.ingredient, location, movement.quantity, movement.total_cost_cents)
                self.session.delete(movement)
            self.session.flush()

        logger.info(
            "order_consumption_reversed",
            extra={"order_id": order_id, "movements": len(movements)},
        )
        return len(movements)

    # ------------------------------------------------------------------
    # Counts and repairs
    # ------------------------------------------------------------------

    def adjust_to_count(
        self,
        ingredient_code: str,
        location_code: str,
        actual_quantity: int,
        count_date: date,
    ) -> CountAdjustment:
        """
        Bring an item to a physical count through a movement.

        A surplus is received at the item's average cost (ingredient cost
        when the item has none); a shortage is written off at average cost.
        The caller posts the matching journal entry.
        """
        ingredient = self.selector.get_ingredient(ingredient_code)
        location = self.selector.get_location(location_code)

        with self.session.begin_nested():
            item = self.get_or_create_item(ingredient, location)
            difference = actual_quantity - item.quantity_on_hand
            movement = None
            value = 0
            if difference > 0:
                unit_cost = costing.effective_unit_cost(
                    item.avg_cost_per_unit_cents, ingredient.cost_per_unit_cents
                )
                value = costing.movement_total(difference, unit_cost)
                self._apply(item, costing.receive(self._valuation(item), difference, value))
                movement = self._movement(
                    ingredient,
                    MovementType.PURCHASE,
                    difference,
                    to_location_id=location.id,
                    unit_cost_cents=unit_cost,
                    total_cost_cents=value,
                    movement_date=count_date,
                    source_type=RECONCILIATION_SOURCE,
                    note=f"Count surplus at {location.code}",
                )
            elif difference < 0:
                unit_cost = item.avg_cost_per_unit_cents
                valuation, cost = costing.issue(self._valuation(item), -difference)
                self._apply(item, valuation)
                value = -cost
                movement = self._movement(
                    ingredient,
                    MovementType.WRITE_OFF,
                    -difference,
                    from_location_id=location.id,
                    unit_cost_cents=unit_cost,
                    total_cost_cents=cost,
                    movement_date=count_date,
                    source_type=RECONCILIATION_SOURCE,
                    note=f"Count shortage at {location.code}",
                )
            self.session.flush()

        return CountAdjustment(
            item=item,
            movement=movement,
            quantity_difference=difference,
            value_difference_cents=value,
        )

    def recompute_quantities(self) -> list[QuantityCorrection]:
        """Reset every cached quantity that disagrees with the movement history."""
        derived = self.selector.derived_quantities()
        corrections = []
        with self.session.begin_nested():
            for item in self.selector.list_items():
                calculated = derived.get((item.ingredient_id, item.location_id), 0)
                if item.quantity_on_hand != calculated:
                    corrections.append(
                        QuantityCorrection(
                            ingredient_id=item.ingredient_id,
                            location_id=item.location_id,
                            before=item.quantity_on_hand,
                            after=calculated,
                        )
                    )
                    item.quantity_on_hand = calculated
            self.session.flush()
        for correction in corrections:
            logger.info(
                "inventory_quantity_recomputed",
                extra={
                    "ingredient_id": correction.ingredient_id,
                    "location_id": correction.location_id,
                    "before": correction.before,
                    "after": correction.after,
                },
            )
        return corrections

    def backfill_movement_costs(self) -> int:
        """
        Value zero-cost usage and write-off movements.

        Uses the average cost of the item at the source location, falling
        back to the ingredient's catalogue cost.  Movements with no known
        cost stay at zero.  Returns the number of movements updated.
        """
        updated = 0
        with self.session.begin_nested():
            for movement in self.selector.zero_cost_movements():
                item = self.selector.find_item(movement.ingredient_id, movement.from_location_id)
                unit_cost = costing.effective_unit_cost(
                    item.avg_cost_per_unit_cents if item is not None else None,
                    movement.ingredient.cost_per_unit_cents,
                )
                if unit_cost == 0:
                    continue
                movement.unit_cost_cents = unit_cost
                movement.total_cost_cents = costing.movement_total(movement.quantity, unit_cost)
                updated += 1
            self.session.flush()
        logger.info("movement_costs_backfilled", extra={"updated": updated})
        return updated

    def delete_movements(self, movement_ids: Iterable[int]) -> int:
        """Delete movements by id (duplicate repair).  Returns the count deleted."""
        deleted = 0
        with self.session.begin_nested():
            for movement_id in movement_ids:
                movement = self.session.get(InventoryMovement, movement_id)
                if movement is None or movement.tenant_id != self.tenant_id:
                    continue
                self.session.delete(movement)
                deleted += 1
            self.session.flush()
        return deleted
