"""Shared error envelope and pagination schemas."""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """A single field-level or contextual error detail."""

    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    """Structured error body returned inside every error response."""

    code: str
    message: str
    details: list[ErrorDetail] = []
    request_id: str = Field(alias="requestId")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Top-level error envelope."""

    error: ErrorBody


class PageMeta(BaseModel):
    """Pagination counters attached to every list response."""

    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def from_page(cls, page) -> "PageMeta":
        return cls(
            page=page.page,
            page_size=page.page_size,
            total_items=page.total,
            total_pages=page.total_pages,
            has_next_page=page.has_next_page,
            has_prev_page=page.has_prev_page,
        )


class StatusCountsResponse(BaseModel):
    counts: dict[str, int]
    total: int


# Documented on routes that go through the workflow engine
WORKFLOW_ERROR_RESPONSES: dict[int | str, dict] = {
    403: {"model": ErrorResponse, "description": "Forbidden or not the assignee"},
    404: {"model": ErrorResponse, "description": "Work item not found"},
    409: {"model": ErrorResponse, "description": "Illegal transition or assignment conflict"},
    422: {"model": ErrorResponse, "description": "Validation failed"},
}
