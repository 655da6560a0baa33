"""
Module: ledger_modules.inventory.orm
Responsibility: SQLAlchemy ORM persistence for the subsidiary inventory:
    ingredients, stock locations, the per-location stock cache and the
    movement history it is derived from.

Architecture position: Modules > Inventory > ORM.  Inherits from TrackedBase
    (ledger_kernel.db.base).

Invariants enforced:
    - All monetary fields are integer cents -- NEVER float.
    - (tenant_id, code) is unique for ingredients and locations.
    - (ingredient_id, location_id) is unique for inventory items.
    - Movements are append-only: only reversal and repair tooling deletes
      them.

Failure modes:
    - IntegrityError on a duplicate ingredient code, location code or item.

Audit relevance:
    - InventoryItem is a cache.  The authoritative quantity is the movement
      history; the authoritative value is the GL inventory accounts.  The
      verification engine reconciles all three.
"""

from datetime import date

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.account_codes import InventoryType


class MovementType:
    PURCHASE = "purchase"
    USAGE = "usage"
    WRITE_OFF = "write_off"
    TRANSFER = "transfer"

    OUTFLOWS = (USAGE, WRITE_OFF)


class Ingredient(TrackedBase):
    """Something the business stocks: a baking ingredient, packaging or kitchen supply."""

    __tablename__ = "ingredients"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_ingredient_tenant_code"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="unit", nullable=False)

    # ingredients | packing | kitchen
    inventory_type: Mapped[str] = mapped_column(
        String(20), default=InventoryType.INGREDIENTS.value, nullable=False
    )

    # Catalogue cost, used when an item has no average cost yet
    cost_per_unit_cents: Mapped[int] = mapped_column(default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Ingredient {self.code}: {self.name}>"

    @property
    def type(self) -> InventoryType:
        return InventoryType(self.inventory_type)


class Location(TrackedBase):
    """A place stock is kept (storage, kitchen, pop-up stand)."""

    __tablename__ = "inventory_locations"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_location_tenant_code"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Location {self.code}: {self.name}>"


class InventoryItem(TrackedBase):
    """
    Cached stock of one ingredient at one location.

    Guarantees:
        - quantity_on_hand is reproducible from the movement history.
        - avg_cost_per_unit_cents is the weighted moving average of inflows.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("ingredient_id", "location_id", name="uq_inventory_item"),
        Index("idx_inventory_item_tenant", "tenant_id"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ingredient_id: Mapped[int] = mapped_column(ForeignKey("ingredients.id"), nullable=False)
    location_id: Mapped[int] = mapped_column(ForeignKey("inventory_locations.id"), nullable=False)
    quantity_on_hand: Mapped[int] = mapped_column(default=0, nullable=False)
    avg_cost_per_unit_cents: Mapped[int] = mapped_column(default=0, nullable=False)

    ingredient: Mapped["Ingredient"] = relationship(lazy="joined")
    location: Mapped["Location"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<InventoryItem ingredient={self.ingredient_id} location={self.location_id} "
            f"qty={self.quantity_on_hand}>"
        )

    @property
    def value_cents(self) -> int:
        return self.quantity_on_hand * self.avg_cost_per_unit_cents


class InventoryMovement(TrackedBase):
    """
    One purchase, usage, write-off or transfer of stock.

    Inflows set to_location_id, outflows set from_location_id, transfers
    set both.  journal_entry_id links purchases and manual usages to the
    entry they posted (order consumption posts through WIP instead).
    """

    __tablename__ = "inventory_movements"

    __table_args__ = (
        Index("idx_movement_ingredient", "ingredient_id"),
        Index("idx_movement_source", "source_type", "source_id"),
        Index("idx_movement_tenant_type", "tenant_id", "movement_type"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ingredient_id: Mapped[int] = mapped_column(ForeignKey("ingredients.id"), nullable=False)
    from_location_id: Mapped[int | None] = mapped_column(
        ForeignKey("inventory_locations.id"), nullable=True
    )
    to_location_id: Mapped[int | None] = mapped_column(
        ForeignKey("inventory_locations.id"), nullable=True
    )
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_cost_cents: Mapped[int] = mapped_column(default=0, nullable=False)
    total_cost_cents: Mapped[int] = mapped_column(default=0, nullable=False)
    movement_date: Mapped[date] = mapped_column(Date, nullable=False)

    # order, manual, repair...
    source_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_id: Mapped[int | None] = mapped_column(nullable=True)

    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    journal_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("journal_entries.id", ondelete="SET NULL"), nullable=True
    )

    ingredient: Mapped["Ingredient"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<InventoryMovement #{self.id} {self.movement_type} "
            f"ingredient={self.ingredient_id} qty={self.quantity}>"
        )
