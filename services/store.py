import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def iso_days_ago(days: int, *, now: Optional[datetime] = None) -> str:
    base = now or datetime.now(timezone.utc)
    return (base - timedelta(days=int(days))).isoformat(timespec="seconds")


def short_id(order_id: str) -> str:
    """Admin-facing order reference: last 8 chars, upper-cased."""
    return str(order_id or "")[-8:].upper()


def _row(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    return dict(row) if row is not None else None


class OrderStore:
    """Reads and writes the storefront order and inventory tables.

    Wraps one long-lived connection that the caller opens at startup and
    releases with ``close()``.
    """

    def __init__(self, con: sqlite3.Connection):
        self.con = con

    def close(self) -> None:
        self.con.close()

    def ping(self) -> bool:
        self.con.execute("SELECT 1").fetchone()
        return True

    # --- orders ---

    def _attach_items(self, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not orders:
            return orders
        ids = [o["id"] for o in orders]
        placeholders = ", ".join("?" for _ in ids)
        rows = self.con.execute(
            f"""
            SELECT oi.id, oi.order_id, oi.quantity, oi.price,
                   p.id AS product_id, p.title AS product_title, p.type AS product_type,
                   v.id AS variant_id, v.size AS size
            FROM order_items oi
            JOIN products p ON p.id = oi.product_id
            LEFT JOIN product_variants v ON v.id = oi.variant_id
            WHERE oi.order_id IN ({placeholders})
            ORDER BY oi.rowid
            """,
            tuple(ids),
        ).fetchall()
        by_order: Dict[str, List[Dict[str, Any]]] = {oid: [] for oid in ids}
        for row in rows:
            by_order[row["order_id"]].append(dict(row))
        for order in orders:
            order["items"] = by_order.get(order["id"], [])
        return orders

    def recent_orders(
        self,
        *,
        status: Optional[str] = None,
        limit: int = 10,
        since: Optional[str] = None,
        email: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if status:
            clauses.append("status = ?")
            params.append(status)
        if since:
            clauses.append("created_at >= ?")
            params.append(since)
        if email:
            clauses.append("LOWER(email) = LOWER(?)")
            params.append(email)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))
        rows = self.con.execute(
            f"SELECT * FROM orders {where} ORDER BY created_at DESC, rowid DESC LIMIT ?",
            tuple(params),
        ).fetchall()
        return self._attach_items([dict(r) for r in rows])

    def find_orders(self, ref: str) -> List[Dict[str, Any]]:
        """Resolve a full id, or a short id by case-insensitive suffix match.

        Returns every candidate so the caller can reject ambiguous suffixes.
        """
        needle = str(ref or "").strip().lstrip("#").lower()
        if not needle:
            return []
        exact = self.con.execute(
            "SELECT * FROM orders WHERE LOWER(id) = ?", (needle,)
        ).fetchall()
        if exact:
            return [dict(r) for r in exact]
        rows = self.con.execute(
            """
            SELECT * FROM orders
            WHERE LENGTH(id) >= ? AND LOWER(SUBSTR(id, -?)) = ?
            ORDER BY created_at DESC
            """,
            (len(needle), len(needle), needle),
        ).fetchall()
        return [dict(r) for r in rows]

    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        order = _row(self.con.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone())
        if order is None:
            return None
        return self._attach_items([order])[0]

    def update_status(self, order_id: str, status: str) -> Optional[Dict[str, Any]]:
        self.con.execute(
            "UPDATE orders SET status = ?, updated_at = ? WHERE id = ?",
            (status, now_iso(), order_id),
        )
        self.con.commit()
        return self.get_order(order_id)

    def mark_shipped(
        self,
        order_id: str,
        tracking_number: str,
        tracking_url: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        stamp = now_iso()
        self.con.execute(
            """
            UPDATE orders
            SET status = 'SHIPPED', tracking_number = ?, tracking_url = COALESCE(?, tracking_url),
                shipped_at = ?, updated_at = ?
            WHERE id = ?
            """,
            (tracking_number, tracking_url, stamp, stamp, order_id),
        )
        self.con.commit()
        return self.get_order(order_id)

    def orders_since(self, since: str, *, include_cancelled: bool = False) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM orders WHERE created_at >= ?"
        if not include_cancelled:
            sql += " AND status != 'CANCELLED'"
        rows = self.con.execute(sql + " ORDER BY created_at ASC", (since,)).fetchall()
        return [dict(r) for r in rows]

    def first_order_dates(self, emails: Iterable[str]) -> Dict[str, str]:
        emails = list(emails)
        if not emails:
            return {}
        placeholders = ", ".join("?" for _ in emails)
        rows = self.con.execute(
            f"""
            SELECT email, MIN(created_at) AS first_at
            FROM orders
            WHERE email IN ({placeholders})
            GROUP BY email
            """,
            tuple(emails),
        ).fetchall()
        return {row["email"]: row["first_at"] for row in rows}

    # --- items + inventory ---

    def items_since(self, since: str) -> List[Dict[str, Any]]:
        """Order items of non-cancelled orders created at or after ``since``."""
        rows = self.con.execute(
            """
            SELECT oi.quantity, oi.price,
                   p.id AS product_id, p.title, p.type, p.base_price,
                   v.size
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            JOIN products p ON p.id = oi.product_id
            LEFT JOIN product_variants v ON v.id = oi.variant_id
            WHERE o.created_at >= ? AND o.status != 'CANCELLED'
            ORDER BY oi.rowid
            """,
            (since,),
        ).fetchall()
        return [dict(r) for r in rows]

    def variants(self) -> List[Dict[str, Any]]:
        rows = self.con.execute(
            """
            SELECT v.id AS variant_id, v.size, v.stock, v.price,
                   p.id AS product_id, p.title AS product_title, p.type AS product_type
            FROM product_variants v
            JOIN products p ON p.id = v.product_id
            ORDER BY v.stock ASC, p.title ASC
            """
        ).fetchall()
        return [dict(r) for r in rows]


def parse_address(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Unparseable shipping address: %r", raw[:80])
        return {}
    return value if isinstance(value, dict) else {}
