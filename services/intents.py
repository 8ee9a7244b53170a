"""Free-text admin messages to typed commands.

Rules are evaluated in a fixed priority order and the first match wins:
rules that carry an explicit identifier (order id, payment id) come first,
then the keyword families from most to least specific: order listing,
product performance, customer stats, inventory and finally the generic
sales words. A message that mentions several families resolves to the
earliest one, so "product performance analytics" is a performance query.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, ClassVar, List, Optional

from burbar_admin.db.schema import ORDER_STATUSES

DEFAULT_DAYS_BACK = 30
MAX_DAYS_BACK = 365

STATUS_KEYWORDS = {
    "pending": "PENDING",
    "processing": "PROCESSING",
    "shipped": "SHIPPED",
    "delivered": "DELIVERED",
    "cancelled": "CANCELLED",
    "canceled": "CANCELLED",
}


# ---- commands ----


@dataclass(frozen=True)
class Command:
    kind: ClassVar[str] = "unknown"


@dataclass(frozen=True)
class GetOrders(Command):
    kind: ClassVar[str] = "get_orders"
    status: Optional[str] = None


@dataclass(frozen=True)
class UpdateOrder(Command):
    kind: ClassVar[str] = "update_order"
    order_id: str = ""
    status: str = ""


@dataclass(frozen=True)
class ShipOrder(Command):
    kind: ClassVar[str] = "ship_order"
    order_id: str = ""
    tracking_number: str = ""


@dataclass(frozen=True)
class CheckInventory(Command):
    kind: ClassVar[str] = "check_inventory"


@dataclass(frozen=True)
class SalesAnalytics(Command):
    kind: ClassVar[str] = "sales_analytics"
    days_back: int = DEFAULT_DAYS_BACK


@dataclass(frozen=True)
class ProductPerformance(Command):
    kind: ClassVar[str] = "product_performance"


@dataclass(frozen=True)
class CustomerStats(Command):
    kind: ClassVar[str] = "customer_stats"


@dataclass(frozen=True)
class LookupPayment(Command):
    kind: ClassVar[str] = "lookup_payment"
    payment_id: str = ""


@dataclass(frozen=True)
class Unknown(Command):
    kind: ClassVar[str] = "unknown"


# ---- rules ----

_UPDATE_RE = re.compile(r"\bupdate\s+order\s+#?(?P<order_id>\w+)\s+to\s+(?P<status>\w+)\b")
# Matched against the unlowered message so ids keep their original casing.
_SHIP_RE = re.compile(r"\bship\s+order\s+#?(?P<order_id>\w+)\s+with\s+tracking\s+(?P<tracking>.+)$", re.IGNORECASE)
_PAYMENT_RE = re.compile(r"\bpayment\s+(?P<payment_id>pi_\w+)", re.IGNORECASE)
_DAYS_RE = re.compile(r"\blast\s+(?P<days>\d+)\s+days?\b")
_ORDERS_WORD_RE = re.compile(r"\borders\b")
_LISTING_WORDS = ("show", "list", "all", "recent")

_INVENTORY_WORDS = ("inventory", "low stock", "stock levels", "out of stock")
_SALES_WORDS = ("sales", "revenue", "analytics")
_PERFORMANCE_WORDS = ("best selling", "best-selling", "top products", "product performance")
_CUSTOMER_WORDS = ("customers", "customer stats")


@dataclass(frozen=True)
class IntentRule:
    name: str
    build: Callable[[str, str], Optional[Command]]
    examples: tuple = ()


def _status_keyword(msg: str) -> Optional[str]:
    for word in re.findall(r"[a-z]+", msg):
        if word in STATUS_KEYWORDS:
            return STATUS_KEYWORDS[word]
    return None


def _update_order(msg: str, raw: str) -> Optional[Command]:
    m = _UPDATE_RE.search(msg)
    if not m:
        return None
    status = STATUS_KEYWORDS.get(m.group("status"))
    if status not in ORDER_STATUSES:
        return None
    return UpdateOrder(order_id=m.group("order_id").upper(), status=status)


def _ship_order(msg: str, raw: str) -> Optional[Command]:
    m = _SHIP_RE.search(raw.strip())
    if not m:
        return None
    tracking = m.group("tracking").strip()
    if not tracking:
        return None
    return ShipOrder(order_id=m.group("order_id").upper(), tracking_number=tracking)


def _lookup_payment(msg: str, raw: str) -> Optional[Command]:
    m = _PAYMENT_RE.search(raw)
    if not m:
        return None
    return LookupPayment(payment_id=m.group("payment_id"))


def _get_orders(msg: str, raw: str) -> Optional[Command]:
    if not _ORDERS_WORD_RE.search(msg):
        return None
    status = _status_keyword(msg)
    if status is None and not any(re.search(rf"\b{w}\b", msg) for w in _LISTING_WORDS):
        return None
    return GetOrders(status=status)


def _any_word(words) -> Callable[[str], bool]:
    return lambda msg: any(w in msg for w in words)


def _check_inventory(msg: str, raw: str) -> Optional[Command]:
    return CheckInventory() if _any_word(_INVENTORY_WORDS)(msg) else None


def _sales_analytics(msg: str, raw: str) -> Optional[Command]:
    if not _any_word(_SALES_WORDS)(msg):
        return None
    m = _DAYS_RE.search(msg)
    days = int(m.group("days")) if m else DEFAULT_DAYS_BACK
    return SalesAnalytics(days_back=min(max(days, 1), MAX_DAYS_BACK))


def _product_performance(msg: str, raw: str) -> Optional[Command]:
    return ProductPerformance() if _any_word(_PERFORMANCE_WORDS)(msg) else None


def _customer_stats(msg: str, raw: str) -> Optional[Command]:
    return CustomerStats() if _any_word(_CUSTOMER_WORDS)(msg) else None


RULES: List[IntentRule] = [
    IntentRule("update_order", _update_order, ('"Update order #12345678 to shipped"',)),
    IntentRule("ship_order", _ship_order, ('"Ship order #12345678 with tracking 1Z999AA1"',)),
    IntentRule("lookup_payment", _lookup_payment, ('"Look up payment pi_1234567890"',)),
    IntentRule("get_orders", _get_orders, ('"Show pending orders"', '"Show all orders"')),
    IntentRule("product_performance", _product_performance, ('"Top products"',)),
    IntentRule("customer_stats", _customer_stats, ('"Customer stats"',)),
    IntentRule("check_inventory", _check_inventory, ('"Check low stock items"',)),
    IntentRule("sales_analytics", _sales_analytics, ('"Sales stats for last 7 days"',)),
]


def parse(message: str) -> Command:
    raw = str(message or "")
    msg = raw.lower().strip()
    if not msg:
        return Unknown()
    for rule in RULES:
        command = rule.build(msg, raw)
        if command is not None:
            return command
    return Unknown()


def help_text() -> str:
    lines = ["I'm not sure how to help with that. Try asking me about:", ""]
    groups = [
        ("Orders", ("get_orders", "update_order", "ship_order")),
        ("Inventory", ("check_inventory",)),
        ("Analytics", ("sales_analytics", "product_performance", "customer_stats")),
        ("Payments", ("lookup_payment",)),
    ]
    by_name = {rule.name: rule for rule in RULES}
    for title, names in groups:
        examples = [ex for name in names for ex in by_name[name].examples]
        lines.append(f"• {title}: {', '.join(examples)}")
    return "\n".join(lines)
