# storefront/domain/schemas.py
from decimal import Decimal
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class LineItem(BaseModel):
    """Jedna pozycja koszyka. quantity < 1 nie istnieje - taka pozycja jest usuwana."""

    product_id: int
    name: str
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image_url: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class CartSnapshot(BaseModel):
    """Uporzadkowana lista pozycji, unikalna po product_id."""

    items: List[LineItem] = Field(default_factory=list)

    def product_ids(self) -> List[str]:
        return [str(i.product_id) for i in self.items]

    def is_empty(self) -> bool:
        return not self.items


class CheckoutTotals(BaseModel):
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    @property
    def amount_minor_units(self) -> int:
        return int((self.total * 100).to_integral_value())


class CheckoutView(BaseModel):
    items: List[LineItem]
    totals: CheckoutTotals

    def product_ids(self) -> List[str]:
        return [str(i.product_id) for i in self.items]


class PaymentMethod(str, Enum):
    COD = "COD"
    ONLINE = "ONLINE"


class AttemptState(str, Enum):
    IDLE = "Idle"
    PREPARING = "Preparing"
    AWAITING_USER = "AwaitingUser"
    VERIFYING = "Verifying"
    COMMITTED = "Committed"
    CANCELLED = "Cancelled"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AttemptState.COMMITTED, AttemptState.CANCELLED, AttemptState.FAILED)


class PaymentIntent(BaseModel):
    """Tylko w pamieci, na czas jednej proby checkoutu."""

    gateway_order_id: str
    amount: int
    currency: str
    status: AttemptState = AttemptState.PREPARING


class GatewayOrder(BaseModel):
    razorpay_order_id: str
    amount: int
    currency: str


class GatewayStatus(BaseModel):
    enabled: bool = False
    key_id: str | None = None


class PaymentReference(BaseModel):
    """Podpisana referencja platnosci z bramki (callback handler)."""

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class Notice(BaseModel):
    level: NoticeLevel
    message: str
    dismiss_after_seconds: int | None = None
    requires_ack: bool = False


class CheckoutOutcome(BaseModel):
    attempt_id: str
    state: AttemptState
    redirect: str | None = None
    notice: Notice | None = None
    intent: PaymentIntent | None = None
    gateway_key_id: str | None = None


class PageContext(BaseModel):
    """Wejscia strony hostujacej, ustalane raz na request."""

    authenticated: bool
    device_id: str
    session_id: str
    auth_token: str | None = None
    session_cookie: str | None = None


# ---- BFF request/response ----

class ItemIn(BaseModel):
    product_id: int = Field(..., gt=0, alias="productId")
    quantity: int = Field(1, gt=0)

    model_config = ConfigDict(populate_by_name=True)


class QuantityIn(BaseModel):
    quantity: int


class SelectionIn(BaseModel):
    product_ids: List[str] = Field(default_factory=list, alias="productIds")

    model_config = ConfigDict(populate_by_name=True)


class PlaceOrderIn(BaseModel):
    payment_method: PaymentMethod = Field(PaymentMethod.COD, alias="paymentMethod")

    model_config = ConfigDict(populate_by_name=True)


class PaymentSuccessIn(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1, alias="razorpayOrderId")
    razorpay_payment_id: str = Field(..., min_length=1, alias="razorpayPaymentId")
    razorpay_signature: str = Field(..., min_length=1, alias="razorpaySignature")

    model_config = ConfigDict(populate_by_name=True)

    def to_reference(self) -> PaymentReference:
        return PaymentReference(
            razorpay_order_id=self.razorpay_order_id,
            razorpay_payment_id=self.razorpay_payment_id,
            razorpay_signature=self.razorpay_signature,
        )


class PaymentFailureIn(BaseModel):
    reason: str | None = None


class CartOut(BaseModel):
    items: List[LineItem]
    totals: CheckoutTotals


class CheckoutPageOut(BaseModel):
    items: List[LineItem] = Field(default_factory=list)
    totals: CheckoutTotals | None = None
    gateway_enabled: bool = False
    redirect: str | None = None
    notice: Notice | None = None
