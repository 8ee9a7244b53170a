from typing import Any, Dict

from services import mailer
from services.audit_log import recent_events
from services.order_ops import OrderLookupError, SendEmail, change_status, resolve_order, ship
from services.schemas import GetOrdersInput, OrderIdInput, UpdateOrderStatusInput
from services.store import OrderStore, iso_days_ago, parse_address, short_id
from services.tool_server import ToolError, ToolServer

SERVER_NAME = "burbar-orders"
TOOL_ACTOR = "order-tools"


def _lookup(store: OrderStore, ref: str) -> Dict[str, Any]:
    try:
        return resolve_order(store, ref)
    except OrderLookupError as exc:
        raise ToolError(exc.message) from exc


def _order_row(order: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": order["id"],
        "short_id": short_id(order["id"]),
        "status": order["status"],
        "email": order["email"],
        "total": order["total"],
        "items_count": len(order.get("items", [])),
        "tracking_number": order.get("tracking_number"),
        "shipped_at": order.get("shipped_at"),
        "created_at": order["created_at"],
        "items": [
            {
                "product": item["product_title"],
                "size": item.get("size"),
                "quantity": item["quantity"],
                "price": item["price"],
            }
            for item in order.get("items", [])
        ],
    }


def build_order_server(store: OrderStore, send_email: SendEmail = mailer.send_email) -> ToolServer:
    server = ToolServer(SERVER_NAME)
    server.on_shutdown(store.close)

    @server.operation(
        "get_orders",
        "Get orders with optional filtering by status, customer email and age",
        GetOrdersInput,
    )
    def get_orders(params: GetOrdersInput) -> Dict[str, Any]:
        since = iso_days_ago(params.days_back) if params.days_back else None
        orders = store.recent_orders(status=params.status, limit=params.limit, since=since, email=params.email)
        return {
            "total_orders": len(orders),
            "filters_applied": {
                "status": params.status or "all",
                "days_back": params.days_back or "all time",
                "email": params.email or "all customers",
            },
            "orders": [_order_row(order) for order in orders],
        }

    @server.operation(
        "get_order_details",
        "Get full details of one order by full id or 8-character short id",
        OrderIdInput,
    )
    def get_order_details(params: OrderIdInput) -> Dict[str, Any]:
        order = store.get_order(_lookup(store, params.order_id)["id"])
        return {
            "id": order["id"],
            "short_id": short_id(order["id"]),
            "status": order["status"],
            "email": order["email"],
            "subtotal": order["subtotal"],
            "shipping_cost": order["shipping_cost"],
            "total": order["total"],
            "payment_method": order["payment_method"],
            "payment_id": order["payment_id"],
            "tracking_number": order["tracking_number"],
            "tracking_url": order["tracking_url"],
            "shipped_at": order["shipped_at"],
            "created_at": order["created_at"],
            "updated_at": order["updated_at"],
            "shipping_address": parse_address(order["shipping_address"]),
            "items": [
                {
                    "id": item["id"],
                    "product": {"id": item["product_id"], "title": item["product_title"], "type": item["product_type"]},
                    "variant": {"id": item["variant_id"], "size": item["size"]},
                    "quantity": item["quantity"],
                    "price": item["price"],
                }
                for item in order["items"]
            ],
            "history": recent_events(store.con, order["id"]),
        }

    @server.operation(
        "update_order_status",
        "Update an order's status; SHIPPED requires a tracking number and emails the customer",
        UpdateOrderStatusInput,
    )
    def update_order_status(params: UpdateOrderStatusInput) -> Dict[str, Any]:
        order = _lookup(store, params.order_id)
        email_sent = False
        if params.status == "SHIPPED":
            outcome = ship(
                store,
                order,
                params.tracking_number,
                actor=TOOL_ACTOR,
                send_email=send_email,
                tracking_url=str(params.tracking_url) if params.tracking_url else None,
                note=params.notes,
            )
            updated, email_sent = outcome.order, outcome.email_sent
        else:
            updated = change_status(store, order, params.status, actor=TOOL_ACTOR, note=params.notes)
        return {
            "success": True,
            "order_id": updated["id"],
            "previous_status": order["status"],
            "new_status": updated["status"],
            "tracking_number": updated.get("tracking_number"),
            "tracking_url": updated.get("tracking_url"),
            "shipped_at": updated.get("shipped_at"),
            "email_sent": email_sent,
            "customer_email": updated["email"],
            "notes": params.notes,
            "updated_at": updated.get("updated_at"),
        }

    return server
