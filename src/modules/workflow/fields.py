"""Per-target extra-field schemas accepted alongside a status change."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, StringConstraints, ValidationError
from pydantic.alias_generators import to_camel

from src.exceptions import ValidationException
from src.models.enums import OrderStatus, PrintingMethod, QuoteStatus, WorkItemType

NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2000)]


def validation_details(exc: ValidationError) -> list[dict]:
    """Flatten pydantic errors into ``{"field", "message"}`` entries."""
    return [
        {"field": ".".join(str(part) for part in error["loc"]) or "body", "message": error["msg"]}
        for error in exc.errors()
    ]


# ---------------------------------------------------------------------------
# Wire models (snake_case or camelCase keys)
# ---------------------------------------------------------------------------


class FieldModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, loc_by_alias=False)


class PriceBreakdown(FieldModel):
    base_price: Decimal = Field(Decimal("0"), ge=0)
    setup_fee: Decimal = Field(Decimal("0"), ge=0)
    design_fee: Decimal = Field(Decimal("0"), ge=0)
    rush_fee: Decimal = Field(Decimal("0"), ge=0)
    shipping_cost: Decimal = Field(Decimal("0"), ge=0)
    tax: Decimal = Field(Decimal("0"), ge=0)
    total_price: Decimal | None = Field(None, ge=0)

    def computed_total(self) -> Decimal:
        return (
            self.base_price
            + self.setup_fee
            + self.design_fee
            + self.rush_fee
            + self.shipping_cost
            + self.tax
        )


class SizeAvailability(FieldModel):
    size: str
    available: bool = True
    additional_cost: Decimal = Field(Decimal("0"), ge=0)


class ProductionDetails(FieldModel):
    estimated_days: int | None = Field(None, ge=1)
    printing_method: PrintingMethod | None = None
    material_specs: str | None = Field(None, max_length=2000)
    color_limitations: str | None = Field(None, max_length=2000)
    size_availability: list[SizeAvailability] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Transition field schemas
# ---------------------------------------------------------------------------


class TransitionFields(FieldModel):
    """Fields any transition may carry."""

    model_config = ConfigDict(extra="forbid")

    notes: str | None = Field(None, max_length=2000)
    admin_notes: str | None = Field(None, max_length=2000)

    def column_values(self) -> dict[str, Any]:
        """Columns written on the work item itself (absent fields are left untouched)."""
        values: dict[str, Any] = {}
        if self.notes is not None:
            values["notes"] = self.notes
        if self.admin_notes is not None:
            values["admin_notes"] = self.admin_notes
        return values


class ShippedFields(TransitionFields):
    shipping_image: HttpUrl | None = None

    def column_values(self) -> dict[str, Any]:
        values = super().column_values()
        if self.shipping_image is not None:
            values["shipping_image"] = str(self.shipping_image)
        return values


class QuotedFields(TransitionFields):
    quoted_price: Decimal = Field(..., ge=0)
    price_breakdown: PriceBreakdown | None = None
    production_details: ProductionDetails | None = None
    response_message: str | None = Field(None, max_length=5000)
    valid_until: datetime | None = None

    def column_values(self) -> dict[str, Any]:
        values = super().column_values()
        values["quoted_price"] = self.quoted_price
        values["price_breakdown"] = self.breakdown_json()
        # A fresh quote supersedes any earlier rejection
        values["rejection_reason"] = None
        return values

    def breakdown_json(self) -> dict | None:
        if self.price_breakdown is None:
            return None
        breakdown = self.price_breakdown.model_copy(update={"total_price": self.quoted_price})
        return breakdown.model_dump(mode="json")


class RejectedFields(TransitionFields):
    rejection_reason: NonEmptyText

    def column_values(self) -> dict[str, Any]:
        values = super().column_values()
        values["rejection_reason"] = self.rejection_reason
        return values


class ShippingImageFields(BaseModel):
    shipping_image: HttpUrl


FIELD_SCHEMAS: dict[tuple[WorkItemType, Any], type[TransitionFields]] = {
    (WorkItemType.ORDER, OrderStatus.SHIPPED): ShippedFields,
    (WorkItemType.REQUEST_QUOTE, QuoteStatus.QUOTED): QuotedFields,
    (WorkItemType.REQUEST_QUOTE, QuoteStatus.REJECTED): RejectedFields,
}


def validate_transition_fields(
    item_type: WorkItemType,
    target: enum.Enum,
    raw: dict[str, Any] | None,
) -> TransitionFields:
    schema = FIELD_SCHEMAS.get((item_type, target), TransitionFields)
    try:
        return schema.model_validate(raw or {})
    except ValidationError as exc:
        raise ValidationException(
            f"Invalid fields for status '{target.value}'",
            details=validation_details(exc),
        ) from exc


def validate_shipping_image(url: Any) -> str:
    try:
        return str(ShippingImageFields(shipping_image=url).shipping_image)
    except ValidationError as exc:
        raise ValidationException(
            "Shipping image must be an absolute http(s) URL",
            details=validation_details(exc),
        ) from exc
