"""Type-specific work item payloads as a pydantic discriminated union."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, computed_field

from src.models.enums import ShippingMethod, WorkItemType

# ---------------------------------------------------------------------------
# Order payload
# ---------------------------------------------------------------------------


class OrderItemSize(BaseModel):
    size: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(..., ge=1)
    price_per_unit: Decimal = Field(..., ge=0)


class OrderItem(BaseModel):
    design_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    color: str = Field(..., min_length=1, max_length=50)
    sizes: list[OrderItemSize] = Field(..., min_length=1)
    image_url: HttpUrl | None = None

    @computed_field
    @property
    def total_price(self) -> Decimal:
        return sum((s.price_per_unit * s.quantity for s in self.sizes), Decimal("0"))

    @property
    def quantity(self) -> int:
        return sum(s.quantity for s in self.sizes)


class ShippingAddress(BaseModel):
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class ShippingDetails(BaseModel):
    name: str | None = None
    phone: str | None = None
    method: ShippingMethod = ShippingMethod.STANDARD
    cost: Decimal = Field(Decimal("0"), ge=0)
    address: ShippingAddress = Field(default_factory=ShippingAddress)


class OrderPayload(BaseModel):
    kind: Literal["order"] = "order"
    items: list[OrderItem]
    shipping_details: ShippingDetails
    total_amount: Decimal
    payment_method: str


# ---------------------------------------------------------------------------
# Request quote payload
# ---------------------------------------------------------------------------


class SizeQuantity(BaseModel):
    size: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(..., ge=0)


class ProductRequest(BaseModel):
    type: Literal["product"] = "product"
    product_id: str = Field(..., min_length=1, max_length=64)
    quantity: int = Field(..., ge=1)
    selected_color_id: str | None = None
    quantity_by_size: list[SizeQuantity] = Field(default_factory=list)


class CustomRequest(BaseModel):
    type: Literal["custom"] = "custom"
    custom_need: str = Field(..., min_length=5, max_length=5000)


QuoteRequestDetails = Annotated[ProductRequest | CustomRequest, Field(discriminator="type")]


class CustomerContact(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email_address: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    company: str | None = Field(None, max_length=255)
    street_address: str = Field(..., min_length=1, max_length=255)
    suburb_city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    postcode: str = Field(..., min_length=1, max_length=20)


class QuotePayload(BaseModel):
    kind: Literal["quote"] = "quote"
    customer: CustomerContact
    request: QuoteRequestDetails
    need_delivery_by: datetime | None = None
    extra_information: str | None = None


WorkItemPayload = Annotated[OrderPayload | QuotePayload, Field(discriminator="kind")]


def payload_of(item_type: WorkItemType, item: Any) -> OrderPayload | QuotePayload:
    """Build the typed payload view of a stored order or request quote."""
    if item_type == WorkItemType.ORDER:
        return OrderPayload(
            items=item.items or [],
            shipping_details=item.shipping_details or {},
            total_amount=item.total_amount,
            payment_method=item.payment_method,
        )

    if item.type.value == "product":
        request: ProductRequest | CustomRequest = ProductRequest.model_validate(
            item.product_details or {}
        )
    else:
        request = CustomRequest(custom_need=item.custom_need or "")
    return QuotePayload(
        customer=CustomerContact.model_validate(item),
        request=request,
        need_delivery_by=item.need_delivery_by,
        extra_information=item.extra_information,
    )
