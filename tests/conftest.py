import json
import uuid
from typing import List, Optional, Tuple

import pytest

from burbar_admin.db.connect import get_conn
from burbar_admin.db.schema import init_db
from services.metrics import metrics
from services.store import OrderStore, iso_days_ago


class Seeder:
    """Inserts storefront rows directly, the way the storefront would."""

    def __init__(self, con):
        self.con = con

    def product(self, title: str, type_: str = "print", base_price: float = 20.0) -> str:
        product_id = uuid.uuid4().hex
        self.con.execute(
            "INSERT INTO products (id, title, type, base_price, slug, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (product_id, title, type_, base_price, product_id, iso_days_ago(90)),
        )
        self.con.commit()
        return product_id

    def variant(self, product_id: str, *, size: Optional[str] = "A4", stock: int = 10, price: float = 20.0) -> str:
        variant_id = uuid.uuid4().hex
        self.con.execute(
            "INSERT INTO product_variants (id, product_id, size, stock, price) VALUES (?, ?, ?, ?, ?)",
            (variant_id, product_id, size, stock, price),
        )
        self.con.commit()
        return variant_id

    def order(
        self,
        *,
        order_id: Optional[str] = None,
        email: str = "ana@example.com",
        status: str = "PENDING",
        total: float = 25.0,
        days_ago: float = 1,
        items: List[Tuple[str, Optional[str], int, float]] = (),
        address: Optional[dict] = None,
    ) -> str:
        order_id = order_id or uuid.uuid4().hex
        created = iso_days_ago(days_ago)
        self.con.execute(
            """
            INSERT INTO orders (id, email, status, subtotal, shipping_cost, total, payment_method,
                                payment_id, shipping_address, created_at, updated_at)
            VALUES (?, ?, ?, ?, 0, ?, 'card', 'pi_test', ?, ?, ?)
            """,
            (
                order_id,
                email,
                status,
                total,
                total,
                json.dumps(address or {"firstName": "Ana", "lastName": "Lee", "city": "Cork", "country": "IE"}),
                created,
                created,
            ),
        )
        for product_id, variant_id, quantity, price in items:
            self.con.execute(
                "INSERT INTO order_items (id, order_id, product_id, variant_id, quantity, price) VALUES (?, ?, ?, ?, ?, ?)",
                (uuid.uuid4().hex, order_id, product_id, variant_id, quantity, price),
            )
        self.con.commit()
        return order_id


@pytest.fixture
def con(tmp_path):
    con = get_conn(tmp_path / "burbar.db")
    init_db(con)
    yield con
    con.close()


@pytest.fixture
def store(con):
    return OrderStore(con)


@pytest.fixture
def seed(con):
    return Seeder(con)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()
