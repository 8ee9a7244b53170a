"""Console entry points for the stdio tool servers.

Each process acquires its handle (database connection or API client) once at
startup; ``serve_stdio`` releases it on shutdown.
"""
from __future__ import annotations

from burbar_admin.config import load_config
from burbar_admin.db.connect import get_conn
from burbar_admin.db.schema import init_db
from burbar_admin.logging import configure_logging
from services.database_tools import build_database_server
from services.deployment_tools import build_deployment_server
from services.order_tools import build_order_server
from services.payment_tools import build_payment_server
from services.payments import PaymentClient
from services.store import OrderStore
from services.tool_server import serve_stdio
from services.vercel import VercelClient


def _open_store() -> OrderStore:
    con = get_conn()
    init_db(con)
    return OrderStore(con)


def run_database() -> None:
    configure_logging(load_config())
    serve_stdio(build_database_server(_open_store()))


def run_orders() -> None:
    configure_logging(load_config())
    serve_stdio(build_order_server(_open_store()))


def run_stripe() -> None:
    config = load_config()
    configure_logging(config)
    serve_stdio(build_payment_server(PaymentClient.from_config(config)))


def run_vercel() -> None:
    config = load_config()
    configure_logging(config)
    serve_stdio(build_deployment_server(VercelClient.from_config(config)))
