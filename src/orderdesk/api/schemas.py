"""Pydantic request/response schemas for the OrderDesk API.

These are external contracts (anti-corruption layer), kept separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(ge=1, le=99)
    unit_price: float = Field(ge=0)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str | None = None
    customer_email: str | None = None
    items: list[OrderItemSchema] = Field(min_length=1)
    total_amount: float | None = Field(default=None, ge=0)
    currency: str = "GBP"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "customer_email": "ada@example.com",
                    "items": [
                        {
                            "product_id": "prod-001",
                            "product_name": "Linen Shirt",
                            "quantity": 2,
                            "unit_price": 45.0,
                        }
                    ],
                    "total_amount": 95.0,
                    "currency": "GBP",
                }
            ]
        }
    }


class ChangeOrderStatusRequest(BaseModel):
    new_status: str
    tracking_number: str | None = None
    tracking_url: str | None = None
    carrier: str | None = None
    notes: str | None = None
    changed_by: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "new_status": "shipped",
                    "tracking_number": "TRK1",
                    "tracking_url": "https://track.example.com/TRK1",
                    "carrier": "Royal Mail",
                    "changed_by": "admin-001",
                }
            ]
        }
    }


class IssueRefundRequest(BaseModel):
    # Accepts numbers or numeric strings; the ledger decides what is valid.
    amount: float | str | None = None
    reason: str | None = None
    issued_by: str | None = None


class ConfigurePaymentProviderRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Refund declined"
    delay_seconds: float = Field(default=0.0, ge=0)


class ConfigureInventoryRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Inventory service unavailable"
    failing_products: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str


class OrderItemResponse(BaseModel):
    item_id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    total_price: float


class StatusHistoryEntry(BaseModel):
    status: str
    notes: str | None = None
    changed_by: str | None = None
    timestamp: datetime


class RefundHistoryEntry(BaseModel):
    refund_id: str
    amount: float
    reason: str
    status: str
    issued_by: str | None = None
    provider_reference: str | None = None
    failure_reason: str | None = None
    timestamp: datetime


class OrderResponse(BaseModel):
    order_id: str
    order_number: str | None = None
    customer_id: str | None = None
    customer_email: str | None = None
    status: str
    currency: str
    total_amount: float
    total_refunded_amount: float
    refundable_amount: float
    refund_status: str
    tracking_number: str | None = None
    tracking_url: str | None = None
    carrier: str | None = None
    items: list[OrderItemResponse]
    status_history: list[StatusHistoryEntry]
    refund_history: list[RefundHistoryEntry]


class RefundAttemptResponse(BaseModel):
    refund_id: str
    amount: float
    status: str
    provider_reference: str | None = None
    failure_reason: str | None = None


class RestockFailureResponse(BaseModel):
    product_id: str
    quantity: int
    reason: str


class StatusChangeResponse(BaseModel):
    message: str
    previous_status: str
    status: str
    restocked: list[str] = Field(default_factory=list)
    restock_failures: list[RestockFailureResponse] = Field(default_factory=list)
    refund: RefundAttemptResponse | None = None
    order: OrderResponse


class RefundResponse(BaseModel):
    message: str
    refund: RefundAttemptResponse
    order: OrderResponse


class PaymentProviderConfigResponse(BaseModel):
    provider: str
    should_succeed: bool
    failure_reason: str
    delay_seconds: float


class InventoryConfigResponse(BaseModel):
    adjuster: str
    should_succeed: bool
    failure_reason: str
    failing_products: list[str]
