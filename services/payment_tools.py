from typing import Any, Dict

from services.payments import PaymentClient, PaymentProviderError
from services.schemas import ListPaymentsInput, RefundInput, RetrievePaymentInput
from services.tool_server import ToolError, ToolServer

SERVER_NAME = "burbar-stripe"


def build_payment_server(client: PaymentClient) -> ToolServer:
    server = ToolServer(SERVER_NAME, expected_errors=(PaymentProviderError,))

    @server.operation("process_refund", "Process a refund for a Stripe payment", RefundInput)
    def process_refund(params: RefundInput) -> Dict[str, Any]:
        return client.refund(
            params.payment_intent_id,
            amount=params.amount,
            reason=params.reason,
            metadata=params.metadata,
        )

    @server.operation("retrieve_payment", "Retrieve details of a Stripe payment", RetrievePaymentInput)
    def retrieve_payment(params: RetrievePaymentInput) -> Dict[str, Any]:
        return client.retrieve(params.payment_intent_id)

    @server.operation(
        "list_recent_payments",
        "List recent payments with optional creation date and customer filters",
        ListPaymentsInput,
    )
    def list_recent_payments(params: ListPaymentsInput) -> Dict[str, Any]:
        try:
            return client.list_recent(
                limit=params.limit,
                created_after=params.created_after,
                created_before=params.created_before,
                customer_id=params.customer_id,
            )
        except ValueError as exc:
            raise ToolError(f"Invalid date filter: {exc}") from exc

    return server
