"""
Module: ledger_modules.inventory.selector
Responsibility: Read-only queries over ingredients, locations, the stock
    cache and the movement history.
Architecture position: Modules > Inventory > Selector.  Extends the kernel
    BaseSelector; never writes.

Invariants enforced:
    - Derived quantities come from SQL aggregation grouped by
      (ingredient, location), never from a Python loop over movements.
    - Every query is scoped to the selector's tenant.

Failure modes:
    - IngredientNotFoundError / LocationNotFoundError from the get_* lookups.
"""

from datetime import date

from sqlalchemy import and_, func, or_, select

from ledger_engines.verification.types import MovementGroup, StockSnapshot
from ledger_kernel.domain.account_codes import InventoryType
from ledger_kernel.exceptions import IngredientNotFoundError, LocationNotFoundError
from ledger_kernel.selectors.base import BaseSelector
from ledger_modules.inventory.orm import (
    Ingredient,
    InventoryItem,
    InventoryMovement,
    Location,
    MovementType,
)

_INFLOW_TYPES = (MovementType.PURCHASE, MovementType.TRANSFER)
_OUTFLOW_TYPES = (MovementType.USAGE, MovementType.WRITE_OFF, MovementType.TRANSFER)


class InventorySelector(BaseSelector):
    """Read access to the subsidiary inventory of one tenant."""

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def find_ingredient(self, code: str) -> Ingredient | None:
        return self.session.execute(
            select(Ingredient).where(
                Ingredient.tenant_id == self.tenant_id,
                Ingredient.code == code,
            )
        ).scalar_one_or_none()

    def get_ingredient(self, code: str) -> Ingredient:
        ingredient = self.find_ingredient(code)
        if ingredient is None:
            raise IngredientNotFoundError(code)
        return ingredient

    def find_location(self, code: str) -> Location | None:
        return self.session.execute(
            select(Location).where(
                Location.tenant_id == self.tenant_id,
                Location.code == code,
            )
        ).scalar_one_or_none()

    def get_location(self, code: str) -> Location:
        location = self.find_location(code)
        if location is None:
            raise LocationNotFoundError(code)
        return location

    def list_ingredients(self) -> list[Ingredient]:
        return list(
            self.session.execute(
                select(Ingredient)
                .where(Ingredient.tenant_id == self.tenant_id)
                .order_by(Ingredient.code)
            ).scalars()
        )

    def list_locations(self) -> list[Location]:
        return list(
            self.session.execute(
                select(Location)
                .where(Location.tenant_id == self.tenant_id)
                .order_by(Location.code)
            ).scalars()
        )

    # ------------------------------------------------------------------
    # Stock cache
    # ------------------------------------------------------------------

    def find_item(self, ingredient_id: int, location_id: int) -> InventoryItem | None:
        return self.session.execute(
            select(InventoryItem).where(
                InventoryItem.tenant_id == self.tenant_id,
                InventoryItem.ingredient_id == ingredient_id,
                InventoryItem.location_id == location_id,
            )
        ).scalar_one_or_none()

    def list_items(self) -> list[InventoryItem]:
        return list(
            self.session.execute(
                select(InventoryItem)
                .where(InventoryItem.tenant_id == self.tenant_id)
                .order_by(InventoryItem.ingredient_id, InventoryItem.location_id)
            ).scalars()
        )

    def stock_snapshots(self) -> list[StockSnapshot]:
        return [
            StockSnapshot(
                ingredient_id=item.ingredient_id,
                location_id=item.location_id,
                ingredient_name=item.ingredient.name,
                location_name=item.location.name,
                quantity_on_hand=item.quantity_on_hand,
                avg_cost_cents=item.avg_cost_per_unit_cents,
            )
            for item in self.list_items()
        ]

    def value_by_type(self) -> dict[InventoryType, int]:
        """
        Subsidiary valuation sum(quantity x average cost) per inventory type.

        Every type is present in the result, zero when nothing is stocked.
        """
        rows = self.session.execute(
            select(
                Ingredient.inventory_type,
                func.coalesce(
                    func.sum(InventoryItem.quantity_on_hand * InventoryItem.avg_cost_per_unit_cents),
                    0,
                ),
            )
            .join(Ingredient, InventoryItem.ingredient_id == Ingredient.id)
            .where(InventoryItem.tenant_id == self.tenant_id)
            .group_by(Ingredient.inventory_type)
        ).all()
        values = {itype: 0 for itype in InventoryType}
        for inventory_type, value in rows:
            values[InventoryType(inventory_type)] += int(value)
        return values

    # ------------------------------------------------------------------
    # Movement history
    # ------------------------------------------------------------------

    def derived_quantities(self) -> dict[tuple[int, int], int]:
        """
        Quantity per (ingredient_id, location_id) implied by the movements.

        Purchases and transfers in add to the destination; usage, write-offs
        and transfers out subtract from the source.
        """
        inflows = self.session.execute(
            select(
                InventoryMovement.ingredient_id,
                InventoryMovement.to_location_id,
                func.sum(InventoryMovement.quantity),
            )
            .where(
                InventoryMovement.tenant_id == self.tenant_id,
                InventoryMovement.movement_type.in_(_INFLOW_TYPES),
                InventoryMovement.to_location_id.is_not(None),
            )
            .group_by(InventoryMovement.ingredient_id, InventoryMovement.to_location_id)
        ).all()
        outflows = self.session.execute(
            select(
                InventoryMovement.ingredient_id,
                InventoryMovement.from_location_id,
                func.sum(InventoryMovement.quantity),
            )
            .where(
                InventoryMovement.tenant_id == self.tenant_id,
                InventoryMovement.movement_type.in_(_OUTFLOW_TYPES),
                InventoryMovement.from_location_id.is_not(None),
            )
            .group_by(InventoryMovement.ingredient_id, InventoryMovement.from_location_id)
        ).all()

        derived: dict[tuple[int, int], int] = {}
        for ingredient_id, location_id, quantity in inflows:
            key = (ingredient_id, location_id)
            derived[key] = derived.get(key, 0) + int(quantity or 0)
        for ingredient_id, location_id, quantity in outflows:
            key = (ingredient_id, location_id)
            derived[key] = derived.get(key, 0) - int(quantity or 0)
        return derived

    def _zero_cost_condition(self):
        return and_(
            InventoryMovement.tenant_id == self.tenant_id,
            InventoryMovement.movement_type.in_(MovementType.OUTFLOWS),
            InventoryMovement.quantity > 0,
            InventoryMovement.from_location_id.is_not(None),
            or_(
                InventoryMovement.total_cost_cents == 0,
                InventoryMovement.unit_cost_cents == 0,
            ),
        )

    def zero_cost_movements(self) -> list[InventoryMovement]:
        """Usage and write-off movements recorded without a cost."""
        return list(
            self.session.execute(
                select(InventoryMovement)
                .where(self._zero_cost_condition())
                .order_by(InventoryMovement.id)
            ).scalars()
        )

    def count_zero_cost_movements(self) -> int:
        return self.session.execute(
            select(func.count(InventoryMovement.id)).where(self._zero_cost_condition())
        ).scalar_one()

    def count_outflow_movements(self) -> int:
        return self.session.execute(
            select(func.count(InventoryMovement.id)).where(
                InventoryMovement.tenant_id == self.tenant_id,
                InventoryMovement.movement_type.in_(MovementType.OUTFLOWS),
            )
        ).scalar_one()

    def movements_for_source(self, source_type: str, source_id: int) -> list[InventoryMovement]:
        return list(
            self.session.execute(
                select(InventoryMovement)
                .where(
                    InventoryMovement.tenant_id == self.tenant_id,
                    InventoryMovement.source_type == source_type,
                    InventoryMovement.source_id == source_id,
                )
                .order_by(InventoryMovement.id)
            ).scalars()
        )

    def movements_for_entry(self, journal_entry_id: int) -> list[InventoryMovement]:
        return list(
            self.session.execute(
                select(InventoryMovement)
                .where(
                    InventoryMovement.tenant_id == self.tenant_id,
                    InventoryMovement.journal_entry_id == journal_entry_id,
                )
                .order_by(InventoryMovement.id)
            ).scalars()
        )

    def list_movements(
        self,
        ingredient_id: int | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[InventoryMovement]:
        query = select(InventoryMovement).where(InventoryMovement.tenant_id == self.tenant_id)
        if ingredient_id is not None:
            query = query.where(InventoryMovement.ingredient_id == ingredient_id)
        if start is not None:
            query = query.where(InventoryMovement.movement_date >= start)
        if end is not None:
            query = query.where(InventoryMovement.movement_date <= end)
        return list(
            self.session.execute(
                query.order_by(InventoryMovement.movement_date, InventoryMovement.id)
            ).scalars()
        )

    def duplicate_movement_groups(self) -> list[MovementGroup]:
        """
        Movements identical in ingredient, locations, type, quantity, date
        and source, with more than one copy.  Ids are listed lowest first.
        """
        key_columns = (
            InventoryMovement.ingredient_id,
            InventoryMovement.from_location_id,
            InventoryMovement.to_location_id,
            InventoryMovement.movement_type,
            InventoryMovement.quantity,
            InventoryMovement.movement_date,
            InventoryMovement.source_type,
            InventoryMovement.source_id,
        )
        keys = self.session.execute(
            select(*key_columns)
            .where(InventoryMovement.tenant_id == self.tenant_id)
            .group_by(*key_columns)
            .having(func.count(InventoryMovement.id) > 1)
            .order_by(InventoryMovement.ingredient_id, InventoryMovement.movement_date)
        ).all()

        groups = []
        for key in keys:
            # NULL locations and sources must match NULL, not nothing
            matches = [
                column.is_not_distinct_from(value)
                for column, value in zip(key_columns, key)
            ]
            movements = list(
                self.session.execute(
                    select(InventoryMovement)
                    .where(InventoryMovement.tenant_id == self.tenant_id, *matches)
                    .order_by(InventoryMovement.id)
                ).scalars()
            )
            first = movements[0]
            groups.append(
                MovementGroup(
                    ingredient_id=first.ingredient_id,
                    ingredient_name=first.ingredient.name,
                    movement_type=first.movement_type,
                    quantity=first.quantity,
                    movement_date=first.movement_date,
                    from_location_id=first.from_location_id,
                    to_location_id=first.to_location_id,
                    source_type=first.source_type,
                    source_id=first.source_id,
                    movement_ids=tuple(m.id for m in movements),
                )
            )
        return groups
