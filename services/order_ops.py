"""Order lookups and status mutations shared by the chat executor and the order tool server."""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from services import mailer
from services.audit_log import record_event
from services.store import OrderStore, short_id

logger = logging.getLogger(__name__)

SendEmail = Callable[[str, str, str], bool]


class OrderLookupError(Exception):
    """An order reference did not resolve to exactly one order."""

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass
class ShipmentOutcome:
    order: Dict[str, Any]
    previous_status: str
    email_sent: bool


def resolve_order(store: OrderStore, ref: str) -> Dict[str, Any]:
    """Return the single order matching a full id or short id.

    Raises OrderLookupError with kind ``not_found`` or ``ambiguous``.
    """
    display = str(ref or "").strip().lstrip("#").upper()
    matches = store.find_orders(ref)
    if not matches:
        raise OrderLookupError("not_found", f"Order #{display} not found.")
    if len(matches) > 1:
        raise OrderLookupError(
            "ambiguous",
            f"Order #{display} matches {len(matches)} orders. Please use the full order id.",
        )
    return matches[0]


def change_status(
    store: OrderStore,
    order: Dict[str, Any],
    status: str,
    *,
    actor: str,
    note: Optional[str] = None,
) -> Dict[str, Any]:
    previous = order["status"]
    updated = store.update_status(order["id"], status)
    record_event(
        store.con,
        actor=actor,
        action_type="order_status_update",
        entity_type="order",
        entity_id=order["id"],
        old_value=previous,
        new_value=status,
        note=note,
    )
    logger.info("Order %s status %s -> %s by %s", short_id(order["id"]), previous, status, actor)
    return updated or order


def ship(
    store: OrderStore,
    order: Dict[str, Any],
    tracking_number: str,
    *,
    actor: str,
    send_email: SendEmail,
    tracking_url: Optional[str] = None,
    note: Optional[str] = None,
) -> ShipmentOutcome:
    """Mark an order shipped and notify the customer.

    A failed email is reported on the outcome; the status change stands.
    """
    previous = order["status"]
    updated = store.mark_shipped(order["id"], tracking_number, tracking_url) or order
    record_event(
        store.con,
        actor=actor,
        action_type="order_shipped",
        entity_type="order",
        entity_id=order["id"],
        old_value=previous,
        new_value={"status": "SHIPPED", "tracking_number": tracking_number},
        note=note,
    )

    subject, body = mailer.shipping_notification(updated, tracking_number, tracking_url)
    try:
        email_sent = bool(send_email(updated["email"], subject, body))
    except Exception:
        logger.exception("Shipping notification failed for order %s", short_id(order["id"]))
        email_sent = False
    if not email_sent:
        logger.warning("Shipping notification not sent for order %s", short_id(order["id"]))
    return ShipmentOutcome(order=updated, previous_status=previous, email_sent=email_sent)
