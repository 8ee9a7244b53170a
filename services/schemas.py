"""Input models for every admin tool operation.

Each model doubles as the JSON Schema advertised in the tool catalog and as
the validator run before the operation does any work.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple, Type, TypeVar

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, ValidationError, model_validator

OrderStatus = Literal["PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"]
DeploymentState = Literal["BUILDING", "ERROR", "INITIALIZING", "QUEUED", "READY", "CANCELED"]
RefundReason = Literal["duplicate", "fraudulent", "requested_by_customer"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

M = TypeVar("M", bound=BaseModel)


class ToolInput(BaseModel):
    model_config = ConfigDict(extra="ignore")


# --- database analytics ---


class DaysBackInput(ToolInput):
    days_back: int = Field(30, ge=1, le=365, description="Number of days to look back (1-365, default 30)")


class InventoryInput(ToolInput):
    low_stock_threshold: int = Field(
        5, ge=0, description="Items with stock at or below this number are low stock (default 5)"
    )


class ProductPerformanceInput(DaysBackInput):
    limit: int = Field(10, ge=1, le=50, description="Number of products to return (1-50, default 10)")


# --- order management ---


class GetOrdersInput(ToolInput):
    status: Optional[OrderStatus] = Field(None, description="Filter by order status")
    limit: int = Field(20, ge=1, le=100, description="Number of orders to return (1-100, default 20)")
    days_back: Optional[int] = Field(None, ge=1, le=365, description="Only show orders from the last N days")
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN, description="Filter by customer email")


class OrderIdInput(ToolInput):
    order_id: str = Field(..., min_length=1, description="Full order id or 8-character short id")


class UpdateOrderStatusInput(OrderIdInput):
    status: OrderStatus = Field(..., description="New status for the order")
    tracking_number: Optional[str] = Field(None, min_length=1, description="Required when status is SHIPPED")
    tracking_url: Optional[AnyHttpUrl] = Field(None, description="Full tracking URL for the customer")
    notes: Optional[str] = Field(None, description="Optional notes about the status change")

    @model_validator(mode="after")
    def _tracking_required_for_shipped(self) -> "UpdateOrderStatusInput":
        if self.status == "SHIPPED" and not self.tracking_number:
            raise ValueError("tracking_number is required when status is SHIPPED")
        return self


# --- payments ---


class RefundInput(ToolInput):
    payment_intent_id: str = Field(..., min_length=1, description="The payment intent id to refund")
    amount: Optional[int] = Field(None, gt=0, description="Amount in cents; omit for a full refund")
    reason: Optional[RefundReason] = Field(None, description="Reason for the refund")
    metadata: Optional[Dict[str, str]] = Field(None, description="Additional metadata for the refund")


class RetrievePaymentInput(ToolInput):
    payment_intent_id: str = Field(..., min_length=1, description="The payment intent id to retrieve")


class ListPaymentsInput(ToolInput):
    limit: int = Field(10, ge=1, le=100, description="Number of payments to retrieve (1-100, default 10)")
    created_after: Optional[str] = Field(None, description="ISO date; only payments created after it")
    created_before: Optional[str] = Field(None, description="ISO date; only payments created before it")
    customer_id: Optional[str] = Field(None, description="Filter by customer id")


# --- deployments ---


class ListDeploymentsInput(ToolInput):
    projectId: Optional[str] = Field(None, description="Project id to filter deployments")
    limit: int = Field(20, ge=1, le=100, description="Number of deployments to return (1-100, default 20)")
    status: Optional[DeploymentState] = Field(None, description="Filter by deployment state")


class DeploymentIdInput(ToolInput):
    deploymentId: str = Field(..., min_length=1, description="The deployment id")


class CleanupDeploymentsInput(ToolInput):
    projectId: Optional[str] = Field(None, description="Project id to clean up; all projects when omitted")
    keepCount: int = Field(5, ge=1, le=50, description="Number of recent deployments to keep (default 5)")
    olderThanDays: int = Field(7, ge=1, description="Only delete deployments older than this (default 7)")
    excludeProduction: bool = Field(True, description="Exclude production deployments (default true)")


class EmptyInput(ToolInput):
    pass


def format_validation_error(exc: ValidationError) -> str:
    problems: List[str] = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        message = str(err.get("msg", "invalid value"))
        problems.append(f"{field}: {message}")
    return "Validation error: " + ", ".join(problems)


def validate_args(model: Type[M], args: Optional[Dict[str, Any]]) -> Tuple[Optional[M], Optional[str]]:
    """Return ``(instance, None)`` or ``(None, message listing every bad field)``."""
    if args is not None and not isinstance(args, dict):
        return None, "Validation error: arguments: Input should be an object"
    try:
        return model.model_validate(args or {}), None
    except ValidationError as exc:
        return None, format_validation_error(exc)
