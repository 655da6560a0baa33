"""
Pytest fixtures for the ledger test suite.

Provides:
- A file-backed SQLite database per test (verification checks open their
  own sessions, so an in-memory database would not be shared)
- Tenant contexts for the bakery (orders pack) and travel agency
  (bookings pack), each with the default chart seeded
- A deterministic clock
- Inventory catalogue and order-book helpers
- Captured structured log records
"""

import json
import logging
from datetime import date
from io import StringIO

import pytest

from ledger_config import load_config
from ledger_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.account_codes import InventoryType
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.lines import EntrySpec, LineSpec
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.chart_service import ChartService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_modules.inventory.service import InventoryService
from ledger_modules.orders.models import InMemoryOrderBook

TODAY = date(2024, 6, 15)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.post(spec)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_posted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database file with every kernel and module table."""
    eng = init_engine_from_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


@pytest.fixture
def session(engine):
    """Session for the test body; rolled back and closed afterwards."""
    s = get_session()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Configuration and tenants
# =============================================================================


@pytest.fixture(scope="session")
def ledger_config():
    return load_config()


@pytest.fixture
def clock():
    return DeterministicClock.on(TODAY)


@pytest.fixture
def bakery(session, ledger_config):
    """Bakery tenant (orders pack) with the default chart seeded."""
    tenant = ledger_config.tenant_context("bakery")
    ChartService(session, tenant).seed(ledger_config.chart)
    return tenant


@pytest.fixture
def travel(session, ledger_config):
    """Travel agency tenant (bookings pack) with the default chart seeded."""
    tenant = ledger_config.tenant_context("travel")
    ChartService(session, tenant).seed(ledger_config.chart)
    return tenant


@pytest.fixture
def ledger(session, bakery):
    return LedgerService(session, bakery)


@pytest.fixture
def post_entry(ledger):
    """
    Post a simple two-line entry.

    Usage::

        entry = post_entry("1000", "3000", 50_000, entry_type=EntryType.INVESTMENT)
    """

    def _post(
        debit_code: str,
        credit_code: str,
        amount_cents: int,
        entry_type: str = EntryType.OTHER,
        entry_date: date = TODAY,
        reference: str | None = None,
        description: str = "Test entry",
    ):
        return ledger.post(
            EntrySpec(
                entry_date=entry_date,
                entry_type=entry_type,
                description=description,
                reference=reference,
                lines=(
                    LineSpec.debit(debit_code, amount_cents),
                    LineSpec.credit(credit_code, amount_cents),
                ),
            )
        )

    return _post


# =============================================================================
# Inventory and orders
# =============================================================================


@pytest.fixture
def inventory(session, bakery):
    """
    InventoryService with a small catalogue:

    - FLOUR (ingredients, 5 c/unit catalogue cost)
    - SUGAR (ingredients, 3 c/unit)
    - BOX (packing, 40 c/unit)
    - GLOVES (kitchen, 20 c/unit)
    - locations PANTRY and KITCHEN
    """
    service = InventoryService(session, bakery)
    service.create_ingredient("FLOUR", "Flour", InventoryType.INGREDIENTS, cost_per_unit_cents=5, unit="g")
    service.create_ingredient("SUGAR", "Sugar", InventoryType.INGREDIENTS, cost_per_unit_cents=3, unit="g")
    service.create_ingredient("BOX", "Cake box", InventoryType.PACKING, cost_per_unit_cents=40)
    service.create_ingredient("GLOVES", "Gloves", InventoryType.KITCHEN, cost_per_unit_cents=20, unit="pair")
    service.create_location("PANTRY", "Pantry")
    service.create_location("KITCHEN", "Kitchen")
    return service


@pytest.fixture
def order_book():
    return InMemoryOrderBook()
