import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from burbar_admin.config import load_config
from burbar_admin.db.connect import get_conn
from burbar_admin.db.schema import init_db
from services import mailer
from services.executor import CommandExecutor
from services.metrics import metrics, record_error
from services.payments import PaymentClient, PaymentProviderError
from services.store import OrderStore

logger = logging.getLogger(__name__)

PROMPT_MESSAGE = "Please provide a message."
APOLOGY_MESSAGE = "Sorry, I encountered an error processing your request."
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _payment_client() -> Optional[PaymentClient]:
    try:
        return PaymentClient.from_config()
    except PaymentProviderError as exc:
        logger.warning("Payment lookups disabled: %s", exc)
        return None


def build_executor() -> CommandExecutor:
    con = get_conn()
    init_db(con)
    return CommandExecutor(OrderStore(con), send_email=mailer.send_email, payments=_payment_client())


def create_app(executor: Optional[CommandExecutor] = None) -> FastAPI:
    """Build the admin chat API; pass ``executor`` to skip opening the database."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = executor is None
        app.state.executor = executor or build_executor()
        logger.info("Admin chat API started")
        try:
            yield
        finally:
            if owned:
                app.state.executor.store.close()
            logger.info("Admin chat API stopped")

    app = FastAPI(title="Burbar Admin Chat API", version="1.0.0", lifespan=lifespan)
    api_cfg = load_config().get("api", {}) or {}
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(api_cfg.get("cors_origins") or DEFAULT_CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> Dict[str, Any]:
        try:
            db_ok = app.state.executor.store.ping()
        except Exception:
            logger.exception("Health check database ping failed")
            db_ok = False
        return {"ok": True, "db": db_ok}

    @app.get("/api/metrics")
    def get_metrics() -> Dict[str, Any]:
        return metrics.get_all_metrics()

    @app.post("/api/admin/chat")
    async def admin_chat(request: Request) -> JSONResponse:
        try:
            body = await request.json()
            message = body.get("message") if isinstance(body, dict) else None
            if not message or not isinstance(message, str):
                return JSONResponse({"response": PROMPT_MESSAGE}, status_code=400)

            with metrics.timer("chat_request"):
                result = await run_in_threadpool(app.state.executor.handle, message)
            return JSONResponse(result.to_payload())
        except Exception:
            logger.exception("Chat API error")
            record_error("chat_api", "request")
            return JSONResponse({"response": APOLOGY_MESSAGE}, status_code=500)

    return app
