"""
Reference string utilities.

Entry references double as the idempotency key (together with the entry
type) and as the cross-lookup key the verification engine parses.  The
formats below are a wire contract: existing books contain them verbatim.

    Order #<id>
    Order #<id> payment #<payment_id>
    Order #<id> AR correction
    Booking #<id> payment #<payment_id>
    Booking #<id> completed
"""

import re

_ORDER_REFERENCE = re.compile(r"Order #(\d+)")

ORDER_REFERENCE_LIKE = "Order #%"


def order_reference(order_id: int) -> str:
    """
    Reference shared by every lifecycle entry of an order.

    Example:
        >>> order_reference(42)
        'Order #42'
    """
    return f"Order #{order_id}"


def order_payment_reference(order_id: int, payment_id: int) -> str:
    return f"Order #{order_id} payment #{payment_id}"


def order_event_reference(order_id: int, event: str) -> str:
    """``Order #<id> <event>``, e.g. ``Order #7 AR correction``."""
    return f"Order #{order_id} {event}"


def entity_reference(entity: str, entity_id: int | str, event: str | None = None) -> str:
    """
    Generic ``<Entity> #<id> <event>`` reference.

    Example:
        >>> entity_reference("Booking", 3, "completed")
        'Booking #3 completed'
    """
    base = f"{entity} #{entity_id}"
    return f"{base} {event}" if event else base


def parse_order_id(reference: str | None) -> int | None:
    """
    Extract the order id from any order-derived reference.

    Returns None when the reference does not name an order.
    """
    if not reference:
        return None
    match = _ORDER_REFERENCE.search(reference)
    if match is None:
        return None
    return int(match.group(1))
