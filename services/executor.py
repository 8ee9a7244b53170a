"""Runs parsed admin chat commands against the order store.

Every branch returns a ``CommandResult``; ``execute`` never raises. Expected
failures (unknown order, ambiguous short id, payment provider errors) carry
an ``error`` kind, anything else is logged and reported as ``internal``.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from burbar_admin.logging import correlation_context, log_with_context
from services import analytics, intents, mailer
from services.intents import (
    CheckInventory,
    Command,
    CustomerStats,
    GetOrders,
    LookupPayment,
    ProductPerformance,
    SalesAnalytics,
    ShipOrder,
    UpdateOrder,
)
from services.metrics import record_command, record_error
from services.order_ops import OrderLookupError, SendEmail, change_status, resolve_order, ship
from services.payments import PaymentClient, PaymentProviderError
from services.store import OrderStore, short_id

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5
ORDER_LIST_LIMIT = 10
TOP_PRODUCTS_LIMIT = 5
STATS_WINDOW_DAYS = 30


@dataclass
class CommandResult:
    response: str
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> Dict[str, Any]:
        return {"response": self.response, "data": self.data}


def _euros(value: float) -> str:
    return f"€{float(value or 0.0):.2f}"


class CommandExecutor:
    def __init__(
        self,
        store: OrderStore,
        send_email: SendEmail = mailer.send_email,
        payments: Optional[PaymentClient] = None,
        actor: str = "admin-chat",
    ):
        self.store = store
        self.send_email = send_email
        self.payments = payments
        self.actor = actor
        self._handlers: Dict[str, Callable[[Any], CommandResult]] = {
            GetOrders.kind: self._get_orders,
            UpdateOrder.kind: self._update_order,
            ShipOrder.kind: self._ship_order,
            CheckInventory.kind: self._check_inventory,
            SalesAnalytics.kind: self._sales_analytics,
            ProductPerformance.kind: self._product_performance,
            CustomerStats.kind: self._customer_stats,
            LookupPayment.kind: self._lookup_payment,
        }

    def handle(self, message: str) -> CommandResult:
        """Parse and execute one admin message."""
        with correlation_context():
            command = intents.parse(message)
            log_with_context(logger, logging.INFO, "Admin command parsed", kind=command.kind)
            start = time.perf_counter()
            result = self.execute(command)
            record_command(command.kind, (time.perf_counter() - start) * 1000, success=result.ok)
            return result

    def execute(self, command: Command) -> CommandResult:
        handler = self._handlers.get(command.kind)
        if handler is None:
            return CommandResult(intents.help_text())
        try:
            return handler(command)
        except OrderLookupError as exc:
            return CommandResult(exc.message, None, exc.kind)
        except PaymentProviderError as exc:
            record_error("executor", "payment_provider")
            return CommandResult(f"Payment lookup failed: {exc}", None, "collaborator")
        except Exception as exc:
            logger.exception("Command execution error (%s)", command.kind)
            record_error("executor", type(exc).__name__)
            return CommandResult(f"Sorry, I encountered an error: {exc}", None, "internal")

    # --- branches ---

    def _get_orders(self, command: GetOrders) -> CommandResult:
        orders = self.store.recent_orders(status=command.status, limit=ORDER_LIST_LIMIT)
        label = f"{command.status} orders" if command.status else "orders"
        if not orders:
            return CommandResult(f"No {label} found.", None)

        summary = [
            {
                "id": short_id(order["id"]),
                "status": order["status"],
                "email": order["email"],
                "total": _euros(order["total"]),
                "items": len(order.get("items", [])),
                "created": str(order["created_at"])[:10],
            }
            for order in orders
        ]
        return CommandResult(f"Found {len(orders)} {label}:", summary)

    def _update_order(self, command: UpdateOrder) -> CommandResult:
        order = resolve_order(self.store, command.order_id)
        updated = change_status(self.store, order, command.status, actor=self.actor)
        return CommandResult(
            f"✅ Order #{command.order_id} updated to {command.status}",
            {
                "orderId": short_id(updated["id"]),
                "previousStatus": order["status"],
                "newStatus": updated["status"],
            },
        )

    def _ship_order(self, command: ShipOrder) -> CommandResult:
        order = resolve_order(self.store, command.order_id)
        outcome = ship(
            self.store,
            order,
            command.tracking_number,
            actor=self.actor,
            send_email=self.send_email,
        )
        email_note = "Email notification sent!" if outcome.email_sent else "Email notification failed."
        return CommandResult(
            f"🚚 Order #{command.order_id} marked as shipped with tracking {command.tracking_number}. {email_note}",
            {
                "orderId": short_id(outcome.order["id"]),
                "trackingNumber": command.tracking_number,
                "emailSent": outcome.email_sent,
            },
        )

    def _check_inventory(self, command: CheckInventory) -> CommandResult:
        levels = analytics.inventory_levels(self.store, LOW_STOCK_THRESHOLD)
        low, out = levels["low_stock"], levels["out_of_stock"]
        return CommandResult(
            "📦 Inventory Summary:\n"
            f"• {len(out)} items out of stock\n"
            f"• {len(low)} items low stock (≤{LOW_STOCK_THRESHOLD})\n"
            f"• {levels['total_variants']} total variants",
            {
                "lowStock": [
                    {"product": v["product_title"], "size": v["size"], "stock": v["stock"], "type": v["product_type"]}
                    for v in low
                ],
                "outOfStock": [
                    {"product": v["product_title"], "size": v["size"], "type": v["product_type"]}
                    for v in out
                ],
            },
        )

    def _sales_analytics(self, command: SalesAnalytics) -> CommandResult:
        days = command.days_back
        sales = analytics.sales_summary(self.store, days)
        return CommandResult(
            f"📊 Sales Analytics (Last {days} days):\n"
            f"• {sales['total_orders']} orders\n"
            f"• {_euros(sales['total_revenue'])} revenue\n"
            f"• {_euros(sales['average_order_value'])} avg order value",
            {
                "period": f"{days} days",
                "totalOrders": sales["total_orders"],
                "totalRevenue": sales["total_revenue"],
                "averageOrderValue": sales["average_order_value"],
            },
        )

    def _product_performance(self, command: ProductPerformance) -> CommandResult:
        ranked = analytics.product_performance(self.store, STATS_WINDOW_DAYS)[:TOP_PRODUCTS_LIMIT]
        return CommandResult(
            f"🏆 Top Products (Last {STATS_WINDOW_DAYS} days):",
            [
                {
                    "title": p["title"],
                    "totalQuantity": p["total_quantity"],
                    "totalRevenue": p["total_revenue"],
                }
                for p in ranked
            ],
        )

    def _customer_stats(self, command: CustomerStats) -> CommandResult:
        stats = analytics.customer_summary(self.store, STATS_WINDOW_DAYS)
        average = stats["average_orders_per_customer"]
        return CommandResult(
            f"👥 Customer Stats (Last {STATS_WINDOW_DAYS} days):\n"
            f"• {stats['total_customers']} unique customers\n"
            f"• {stats['total_orders']} total orders\n"
            f"• {average:.1f} avg orders per customer",
            {
                "uniqueCustomers": stats["total_customers"],
                "totalOrders": stats["total_orders"],
                "averageOrdersPerCustomer": average,
            },
        )

    def _lookup_payment(self, command: LookupPayment) -> CommandResult:
        if self.payments is None:
            return CommandResult("Payment lookups are not configured.", None, "collaborator")
        payment = self.payments.retrieve(command.payment_id)
        currency = str(payment.get("currency") or "").upper()
        amount = int(payment.get("amount") or 0) / 100
        return CommandResult(
            f"💳 Payment {command.payment_id}:\n"
            f"• Amount: {currency} {amount:.2f}\n"
            f"• Status: {payment.get('status')}",
            {
                "id": payment.get("id"),
                "amount": amount,
                "currency": currency,
                "status": payment.get("status"),
                "created": payment.get("created"),
            },
        )
