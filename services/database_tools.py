from typing import Any, Dict

from services import analytics
from services.schemas import DaysBackInput, InventoryInput, ProductPerformanceInput
from services.store import OrderStore
from services.tool_server import ToolServer

SERVER_NAME = "burbar-database"
UNDERPERFORMER_COUNT = 5


def _period(days_back: int) -> str:
    return f"Last {days_back} days"


def _low_stock_item(variant: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "product_id": variant["product_id"],
        "product_title": variant["product_title"],
        "product_type": variant["product_type"],
        "variant_id": variant["variant_id"],
        "size": variant["size"],
        "current_stock": variant["stock"],
        "price": variant["price"],
    }


def build_database_server(store: OrderStore) -> ToolServer:
    """Read-only analytics over the storefront database."""
    server = ToolServer(SERVER_NAME)
    server.on_shutdown(store.close)

    @server.operation(
        "get_sales_analytics",
        "Get sales analytics for a specific time period",
        DaysBackInput,
    )
    def get_sales_analytics(params: DaysBackInput) -> Dict[str, Any]:
        sales = analytics.sales_summary(store, params.days_back)
        return {
            "period": _period(params.days_back),
            "summary": {
                "total_orders": sales["total_orders"],
                "total_revenue": sales["total_revenue"],
                "total_items_sold": sales["total_items_sold"],
                "average_order_value": sales["average_order_value"],
            },
            "orders_by_status": sales["orders_by_status"],
            "daily_breakdown": sales["daily_breakdown"],
        }

    @server.operation(
        "check_inventory",
        "Check inventory levels and identify low stock items",
        InventoryInput,
    )
    def check_inventory(params: InventoryInput) -> Dict[str, Any]:
        levels = analytics.inventory_levels(store, params.low_stock_threshold)
        return {
            "inventory_summary": {
                "total_variants": levels["total_variants"],
                "low_stock_count": len(levels["low_stock"]),
                "out_of_stock_count": len(levels["out_of_stock"]),
                "average_stock": levels["average_stock"],
                "low_stock_threshold": levels["low_stock_threshold"],
            },
            "low_stock_items": [_low_stock_item(v) for v in levels["low_stock"]],
            "out_of_stock_items": [
                {k: v for k, v in _low_stock_item(variant).items() if k != "current_stock"}
                for variant in levels["out_of_stock"]
            ],
        }

    @server.operation(
        "get_customer_stats",
        "Get customer statistics and behavior analysis",
        DaysBackInput,
    )
    def get_customer_stats(params: DaysBackInput) -> Dict[str, Any]:
        stats = analytics.customer_summary(store, params.days_back)
        return {
            "period": _period(params.days_back),
            "customer_summary": {
                "total_customers": stats["total_customers"],
                "new_customers": stats["new_customers"],
                "returning_customers": stats["returning_customers"],
                "repeat_purchase_rate": stats["repeat_purchase_rate"],
            },
            "top_customers": stats["top_customers"],
            "order_frequency": stats["order_frequency"],
        }

    @server.operation(
        "get_product_performance",
        "Analyze product performance and best sellers",
        ProductPerformanceInput,
    )
    def get_product_performance(params: ProductPerformanceInput) -> Dict[str, Any]:
        ranked = analytics.product_performance(store, params.days_back)
        rows = [
            {
                "product_id": p["product_id"],
                "title": p["title"],
                "type": p["type"],
                "base_price": p["base_price"],
                "total_quantity_sold": p["total_quantity"],
                "total_revenue": p["total_revenue"],
                "times_ordered": p["times_ordered"],
                "sizes_sold": p["sizes_sold"],
                "average_price": p["average_price"],
            }
            for p in ranked
        ]
        return {
            "period": _period(params.days_back),
            "summary": {
                "total_products_sold": len(rows),
                "total_items_sold": sum(r["total_quantity_sold"] for r in rows),
                "total_revenue": round(sum(r["total_revenue"] for r in rows), 2),
            },
            "top_performers": rows[: params.limit],
            "underperformers": list(reversed(rows[-UNDERPERFORMER_COUNT:])),
        }

    @server.operation(
        "get_order_trends",
        "Analyze order trends and patterns",
        DaysBackInput,
    )
    def get_order_trends(params: DaysBackInput) -> Dict[str, Any]:
        trends = analytics.order_trends(store, params.days_back)
        return {
            "period": _period(params.days_back),
            "order_trends": {
                "total_orders": trends["total_orders"],
                "orders_by_day_of_week": trends["orders_by_day_of_week"],
                "orders_by_hour": trends["orders_by_hour"],
                "orders_by_status": trends["orders_by_status"],
            },
            "insights": {
                "busiest_day": trends["busiest_day"],
                "busiest_hour": trends["busiest_hour"],
                "completion_rate": trends["completion_rate"],
            },
        }

    return server
