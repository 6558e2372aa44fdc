"""Pydantic v2 schemas for request quote endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.enums import FeedbackAspect, QuoteStatus, RevisionReason
from src.modules.workflow.fields import FieldModel, PriceBreakdown, ProductionDetails
from src.modules.workflow.payloads import CustomerContact, QuoteRequestDetails
from src.modules.workflow.schemas import WorkItemResponse
from src.schemas.responses import PageMeta

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class RequestQuoteCreate(CustomerContact):
    request: QuoteRequestDetails
    agree_terms: bool
    need_delivery_by: datetime | None = None
    extra_information: str | None = Field(None, max_length=5000)

    @field_validator("agree_terms")
    @classmethod
    def _terms_accepted(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must agree to the terms and conditions")
        return value


class QuoteRevisionRequest(FieldModel):
    model_config = ConfigDict(extra="forbid")

    quoted_price: Decimal = Field(..., ge=0)
    price_breakdown: PriceBreakdown | None = None
    production_details: ProductionDetails | None = None
    response_message: str | None = Field(None, max_length=5000)
    valid_until: datetime | None = None
    admin_notes: str | None = Field(None, max_length=2000)
    revision_reason: RevisionReason = RevisionReason.ADMIN_IMPROVEMENT


class RequestedChange(BaseModel):
    aspect: FeedbackAspect
    description: str = Field(..., min_length=1, max_length=2000)


class QuoteFeedbackRequest(BaseModel):
    requested_changes: list[RequestedChange] = Field(..., min_length=1)
    message: str | None = Field(None, max_length=5000)


class DesignerAssignRequest(BaseModel):
    designer_id: str = Field(..., min_length=1, max_length=64)


class PrimaryDesignRequest(BaseModel):
    design_id: uuid.UUID


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RequestQuoteResponse(WorkItemResponse):
    design_id: uuid.UUID | None = None
    quoted_price: Decimal | None = None
    price_breakdown: dict | None = None
    rejection_reason: str | None = None
    current_version: int
    total_revisions: int


class RequestQuoteListResponse(BaseModel):
    items: list[RequestQuoteResponse]
    meta: PageMeta


class QuoteResponseVersion(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    version: int
    status: QuoteStatus
    quoted_price: Decimal | None = None
    price_breakdown: dict | None = None
    production_details: dict | None = None
    response_message: str | None = None
    rejection_reason: str | None = None
    admin_notes: str | None = None
    responded_at: datetime
    valid_until: datetime | None = None
    is_current_version: bool
    revision_reason: RevisionReason | None = None
    customer_feedback: dict | None = None
