#!/usr/bin/env python3
"""Create the storefront schema and load demo data.

Usage:
    python scripts/seed_db.py               # Seed the configured database
    python scripts/seed_db.py --db FILE     # Seed another database file
    python scripts/seed_db.py --reset       # Drop existing demo rows first
"""
import argparse
import json
import random
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from burbar_admin.db.connect import get_conn
from burbar_admin.db.schema import init_db

PRODUCTS = [
    ("Blue Hour Print", "print", 35.0, ["A4", "A3"]),
    ("Harbour Lights Canvas", "canvas", 120.0, ["40x50", "60x80"]),
    ("Old Town Tote", "tote", 25.0, [None]),
    ("Sea Glass Poster", "poster", 20.0, ["A3", "A2"]),
]
EMAILS = ["ana@example.com", "ben@example.com", "chloe@example.com", "dev@example.com"]
STATUSES = ["PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"]


def _id() -> str:
    return uuid.uuid4().hex


def seed(con, *, orders: int = 25, rng: random.Random) -> None:
    now = datetime.now(timezone.utc)
    variants = []
    for title, kind, base_price, sizes in PRODUCTS:
        product_id = _id()
        con.execute(
            "INSERT INTO products (id, title, type, base_price, slug, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (product_id, title, kind, base_price, title.lower().replace(" ", "-"), now.isoformat(timespec="seconds")),
        )
        for size in sizes:
            variant_id = _id()
            con.execute(
                "INSERT INTO product_variants (id, product_id, size, stock, price) VALUES (?, ?, ?, ?, ?)",
                (variant_id, product_id, size, rng.randint(0, 12), base_price),
            )
            variants.append((product_id, variant_id, base_price))

    for _ in range(orders):
        created = now - timedelta(days=rng.randint(0, 60), hours=rng.randint(0, 23))
        lines = rng.sample(variants, k=rng.randint(1, 3))
        quantities = [rng.randint(1, 2) for _ in lines]
        subtotal = sum(price * qty for (_, _, price), qty in zip(lines, quantities))
        order_id = _id()
        address = {
            "firstName": "Demo",
            "lastName": "Customer",
            "address": "1 Quay Street",
            "city": "Galway",
            "postalCode": "H91",
            "country": "IE",
        }
        stamp = created.isoformat(timespec="seconds")
        con.execute(
            """
            INSERT INTO orders (id, email, status, subtotal, shipping_cost, total, payment_method,
                                shipping_address, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, 'card', ?, ?, ?)
            """,
            (order_id, rng.choice(EMAILS), rng.choice(STATUSES), subtotal, 5.0, subtotal + 5.0,
             json.dumps(address), stamp, stamp),
        )
        for (product_id, variant_id, price), qty in zip(lines, quantities):
            con.execute(
                "INSERT INTO order_items (id, order_id, product_id, variant_id, quantity, price) VALUES (?, ?, ?, ?, ?, ?)",
                (_id(), order_id, product_id, variant_id, qty, price),
            )
    con.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the Burbar demo database")
    parser.add_argument("--db", type=str, metavar="FILE", help="Database file (defaults to config)")
    parser.add_argument("--orders", type=int, default=25, help="Number of demo orders")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    parser.add_argument("--reset", action="store_true", help="Delete existing rows first")
    args = parser.parse_args()

    con = get_conn(Path(args.db) if args.db else None)
    try:
        init_db(con)
        if args.reset:
            for table in ("order_items", "orders", "product_variants", "products", "audit_events"):
                con.execute(f"DELETE FROM {table}")
            con.commit()
        seed(con, orders=args.orders, rng=random.Random(args.seed))
        count = con.execute("SELECT COUNT(*) FROM orders").fetchone()[0]
        print(f"Seeded database: {count} orders")
    finally:
        con.close()


if __name__ == "__main__":
    main()
