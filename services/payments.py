"""Thin wrapper over the Stripe SDK for the admin payment operations."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import stripe

from burbar_admin.config import get_secret

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """Raised when Stripe rejects or fails a request."""


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _iso(epoch: Optional[int]) -> Optional[str]:
    if epoch is None:
        return None
    return datetime.fromtimestamp(int(epoch), tz=timezone.utc).isoformat()


def iso_to_epoch(value: str) -> int:
    """Parse an ISO date or datetime (naive means UTC) into epoch seconds."""
    parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _customer(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return {"id": _field(value, "id"), "email": _field(value, "email"), "name": _field(value, "name")}


def _metadata(value: Any) -> Dict[str, Any]:
    if not value:
        return {}
    try:
        return {str(k): v for k, v in dict(value).items()}
    except (TypeError, ValueError):
        return {}


def summarize_payment(payment: Any) -> Dict[str, Any]:
    charge = _field(payment, "latest_charge")
    charges: List[Dict[str, Any]] = []
    if charge is not None and not isinstance(charge, str):
        charges.append(
            {
                "id": _field(charge, "id"),
                "amount": _field(charge, "amount"),
                "status": _field(charge, "status"),
                "receipt_url": _field(charge, "receipt_url"),
                "refunded": _field(charge, "refunded"),
                "amount_refunded": _field(charge, "amount_refunded"),
            }
        )
    return {
        "id": _field(payment, "id"),
        "amount": _field(payment, "amount"),
        "currency": _field(payment, "currency"),
        "status": _field(payment, "status"),
        "created": _iso(_field(payment, "created")),
        "customer": _customer(_field(payment, "customer")),
        "description": _field(payment, "description"),
        "metadata": _metadata(_field(payment, "metadata")),
        "charges": charges,
    }


class PaymentClient:
    """Stripe calls used by the chat executor and the payment tool server.

    Amounts are in the smallest currency unit, as Stripe reports them.
    """

    def __init__(self, api_key: str):
        if not api_key:
            raise PaymentProviderError("Stripe secret key is not configured")
        self.api_key = api_key

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "PaymentClient":
        return cls(get_secret("stripe", "secret_key_env_var", "STRIPE_SECRET_KEY", config) or "")

    def retrieve(self, payment_intent_id: str) -> Dict[str, Any]:
        try:
            payment = stripe.PaymentIntent.retrieve(
                payment_intent_id,
                api_key=self.api_key,
                expand=["customer", "latest_charge"],
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe retrieve failed for %s: %s", payment_intent_id, exc)
            raise PaymentProviderError(getattr(exc, "user_message", None) or str(exc)) from exc
        return summarize_payment(payment)

    def refund(
        self,
        payment_intent_id: str,
        amount: Optional[int] = None,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"payment_intent": payment_intent_id, "metadata": metadata or {}}
        if amount is not None:
            params["amount"] = int(amount)
        if reason:
            params["reason"] = reason
        try:
            refund = stripe.Refund.create(api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            logger.warning("Stripe refund failed for %s: %s", payment_intent_id, exc)
            raise PaymentProviderError(getattr(exc, "user_message", None) or str(exc)) from exc
        logger.info("Refund %s created for %s", _field(refund, "id"), payment_intent_id)
        return {
            "success": True,
            "refund_id": _field(refund, "id"),
            "amount_refunded": _field(refund, "amount"),
            "status": _field(refund, "status"),
            "reason": _field(refund, "reason"),
            "created": _iso(_field(refund, "created")),
            "payment_intent": _field(refund, "payment_intent"),
        }

    def list_recent(
        self,
        limit: int = 10,
        created_after: Optional[str] = None,
        created_before: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"limit": int(limit), "expand": ["data.customer"]}
        created: Dict[str, int] = {}
        if created_after:
            created["gte"] = iso_to_epoch(created_after)
        if created_before:
            created["lte"] = iso_to_epoch(created_before)
        if created:
            params["created"] = created
        if customer_id:
            params["customer"] = customer_id
        try:
            page = stripe.PaymentIntent.list(api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            logger.warning("Stripe list failed: %s", exc)
            raise PaymentProviderError(getattr(exc, "user_message", None) or str(exc)) from exc
        data = list(_field(page, "data", []) or [])
        payments = []
        for payment in data:
            summary = summarize_payment(payment)
            summary.pop("charges", None)
            payments.append(summary)
        return {
            "total_count": len(payments),
            "has_more": bool(_field(page, "has_more", False)),
            "payments": payments,
        }
