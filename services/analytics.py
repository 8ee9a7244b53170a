"""Order and inventory aggregations shared by the chat executor and the tool servers."""
from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from services.store import OrderStore, iso_days_ago

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _money(value: float) -> float:
    return round(float(value or 0.0), 2)


def _busiest(counts: Dict[Any, int]) -> Optional[Any]:
    if not counts:
        return None
    return max(counts.items(), key=lambda kv: kv[1])[0]


def sales_summary(store: OrderStore, days_back: int, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    since = iso_days_ago(days_back, now=now)
    orders = store.orders_since(since)
    total_revenue = sum(float(o["total"] or 0.0) for o in orders)
    total_orders = len(orders)

    items_sold = 0
    for item in store.items_since(since):
        items_sold += int(item["quantity"] or 0)

    by_status: Dict[str, int] = Counter(o["status"] for o in orders)

    daily: Dict[str, Dict[str, float]] = defaultdict(lambda: {"orders": 0, "revenue": 0.0})
    for order in orders:
        day = str(order["created_at"])[:10]
        daily[day]["orders"] += 1
        daily[day]["revenue"] += float(order["total"] or 0.0)

    return {
        "days_back": int(days_back),
        "total_orders": total_orders,
        "total_revenue": _money(total_revenue),
        "total_items_sold": items_sold,
        "average_order_value": _money(total_revenue / total_orders) if total_orders else 0.0,
        "orders_by_status": dict(by_status),
        "daily_breakdown": [
            {"date": day, "orders": int(stats["orders"]), "revenue": _money(stats["revenue"])}
            for day, stats in sorted(daily.items())
        ],
    }


def inventory_levels(store: OrderStore, low_stock_threshold: int) -> Dict[str, Any]:
    variants = store.variants()
    low = [v for v in variants if int(v["stock"] or 0) <= low_stock_threshold]
    out = [v for v in variants if int(v["stock"] or 0) == 0]
    total_stock = sum(int(v["stock"] or 0) for v in variants)
    return {
        "total_variants": len(variants),
        "low_stock": low,
        "out_of_stock": out,
        "average_stock": _money(total_stock / len(variants)) if variants else 0.0,
        "low_stock_threshold": int(low_stock_threshold),
    }


def product_performance(store: OrderStore, days_back: int, *, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Per-product quantity and revenue, highest revenue first."""
    stats: Dict[str, Dict[str, Any]] = {}
    for item in store.items_since(iso_days_ago(days_back, now=now)):
        entry = stats.get(item["product_id"])
        if entry is None:
            entry = {
                "product_id": item["product_id"],
                "title": item["title"],
                "type": item["type"],
                "base_price": item["base_price"],
                "total_quantity": 0,
                "total_revenue": 0.0,
                "times_ordered": 0,
                "sizes_sold": [],
            }
            stats[item["product_id"]] = entry
        quantity = int(item["quantity"] or 0)
        entry["total_quantity"] += quantity
        entry["total_revenue"] += quantity * float(item["price"] or 0.0)
        entry["times_ordered"] += 1
        if item["size"] and item["size"] not in entry["sizes_sold"]:
            entry["sizes_sold"].append(item["size"])

    ranked = sorted(stats.values(), key=lambda s: s["total_revenue"], reverse=True)
    for entry in ranked:
        quantity = entry["total_quantity"]
        entry["average_price"] = _money(entry["total_revenue"] / quantity) if quantity else 0.0
        entry["total_revenue"] = _money(entry["total_revenue"])
    return ranked


def customer_summary(store: OrderStore, days_back: int, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    since = iso_days_ago(days_back, now=now)
    orders = store.orders_since(since)
    per_customer: Dict[str, int] = Counter(o["email"] for o in orders)
    spent: Dict[str, float] = defaultdict(float)
    for order in orders:
        spent[order["email"]] += float(order["total"] or 0.0)

    first_seen = store.first_order_dates(per_customer.keys())
    new_customers = [email for email in per_customer if str(first_seen.get(email, since)) >= since]
    returning = [email for email in per_customer if email not in new_customers]

    total_customers = len(per_customer)
    repeat = sorted(
        ((email, count) for email, count in per_customer.items() if count > 1),
        key=lambda kv: kv[1],
        reverse=True,
    )
    return {
        "days_back": int(days_back),
        "total_orders": len(orders),
        "total_customers": total_customers,
        "new_customers": len(new_customers),
        "returning_customers": len(returning),
        "repeat_purchase_rate": round(len(returning) / total_customers * 100) if total_customers else 0,
        "average_orders_per_customer": round(len(orders) / total_customers, 1) if total_customers else 0.0,
        "top_customers": [
            {"email": email, "order_count": count, "total_spent": _money(spent[email])}
            for email, count in repeat[:10]
        ],
        "order_frequency": {
            "single_order": sum(1 for c in per_customer.values() if c == 1),
            "multiple_orders": sum(1 for c in per_customer.values() if c > 1),
        },
    }


def order_trends(store: OrderStore, days_back: int, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    orders = store.orders_since(iso_days_ago(days_back, now=now), include_cancelled=True)
    by_weekday: Dict[str, int] = Counter()
    by_hour: Dict[int, int] = Counter()
    for order in orders:
        created = datetime.fromisoformat(str(order["created_at"]).replace("Z", "+00:00"))
        by_weekday[WEEKDAYS[created.weekday()]] += 1
        by_hour[created.hour] += 1
    by_status: Dict[str, int] = Counter(o["status"] for o in orders)

    busiest_day = _busiest(by_weekday)
    busiest_hour = _busiest(by_hour)
    total = len(orders)
    return {
        "days_back": int(days_back),
        "total_orders": total,
        "orders_by_day_of_week": dict(by_weekday),
        "orders_by_hour": {str(hour): count for hour, count in sorted(by_hour.items())},
        "orders_by_status": dict(by_status),
        "busiest_day": busiest_day if busiest_day is not None else "No data",
        "busiest_hour": str(busiest_hour) if busiest_hour is not None else "No data",
        "completion_rate": round(by_status.get("DELIVERED", 0) / total * 100) if total else 0,
    }
