"""Read side: filtered, paginated and counted views of work items per actor."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import and_, false, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import ValidationException
from src.models.enums import WorkItemType
from src.modules.identity.auth import AuthenticatedUser
from src.modules.workflow.permissions import can_claim_pool
from src.modules.workflow.registry import WorkflowDefinition, get_definition, parse_status
from src.modules.workflow.store import WorkItemStore

T = TypeVar("T")

SORT_FIELDS = ("created_at", "updated_at", "status")


@dataclass
class ListFilter:
    status: str | None = None
    statuses: tuple[str, ...] = ()
    search: str | None = None
    page: int = 1
    page_size: int = field(default_factory=lambda: settings.default_page_size)
    sort_by: str = "created_at"
    sort_order: str = "desc"
    assignee_id: str | None = None
    unassigned_only: bool = False
    # Exact-match filters on other columns, e.g. {"type": "custom"}
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class WorkItemQueryService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = WorkItemStore(db)

    async def list_items(
        self,
        item_type: WorkItemType,
        actor: AuthenticatedUser,
        filters: ListFilter,
    ) -> Page:
        definition = get_definition(item_type)
        self._check_paging(filters)
        model = definition.model

        conditions = self._base_conditions(definition, actor, filters)
        conditions.extend(self._status_conditions(definition, filters))

        stmt = select(model).where(*conditions)
        total = await self.store.count(stmt)

        sort_column = getattr(model, filters.sort_by)
        ordering = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()
        stmt = stmt.order_by(ordering, model.id.asc())

        items = await self.store.fetch_page(
            stmt,
            offset=(filters.page - 1) * filters.page_size,
            limit=filters.page_size,
        )
        return Page(items=items, total=total, page=filters.page, page_size=filters.page_size)

    async def count_by_status(
        self,
        item_type: WorkItemType,
        actor: AuthenticatedUser,
        filters: ListFilter | None = None,
    ) -> dict[str, int]:
        """Counts for every status of the type, zeros included."""
        definition = get_definition(item_type)
        model = definition.model
        conditions = self._base_conditions(definition, actor, filters or ListFilter())

        rows = await self.store.rows(
            select(model.status, func.count(model.id)).where(*conditions).group_by(model.status)
        )
        counts = {status.value: 0 for status in definition.status_enum}
        for status, count in rows:
            counts[definition.status_enum(status).value] = count
        return counts

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def _base_conditions(
        self,
        definition: WorkflowDefinition,
        actor: AuthenticatedUser,
        filters: ListFilter,
    ) -> list[Any]:
        model = definition.model
        assignee = definition.assignee_column
        conditions: list[Any] = []

        if not actor.is_admin:
            visible = [model.user_id == actor.id, assignee == actor.id]
            if can_claim_pool(definition, actor):
                visible.append(
                    and_(model.status.in_(definition.claimable_statuses), assignee.is_(None))
                )
            conditions.append(or_(*visible))

        if filters.assignee_id:
            conditions.append(assignee == filters.assignee_id)
        if filters.unassigned_only:
            conditions.append(assignee.is_(None))

        for name, value in filters.attributes.items():
            if value is not None:
                conditions.append(getattr(model, name) == value)

        if filters.search and filters.search.strip():
            pattern = f"%{_escape_like(filters.search.strip())}%"
            columns = definition.search_columns()
            if columns:
                conditions.append(or_(*(col.ilike(pattern, escape="\\") for col in columns)))
            else:
                conditions.append(false())

        return conditions

    def _status_conditions(self, definition: WorkflowDefinition, filters: ListFilter) -> list[Any]:
        model = definition.model
        conditions: list[Any] = []
        if filters.status:
            conditions.append(model.status == parse_status(definition.item_type, filters.status))
        if filters.statuses:
            wanted = [parse_status(definition.item_type, s, "statuses") for s in filters.statuses]
            conditions.append(model.status.in_(wanted))
        return conditions

    @staticmethod
    def _check_paging(filters: ListFilter) -> None:
        problems = []
        if filters.page < 1:
            problems.append({"field": "page", "message": "Must be at least 1"})
        if not 1 <= filters.page_size <= settings.max_page_size:
            problems.append(
                {"field": "page_size", "message": f"Must be between 1 and {settings.max_page_size}"}
            )
        if filters.sort_by not in SORT_FIELDS:
            problems.append({"field": "sort_by", "message": f"Must be one of {list(SORT_FIELDS)}"})
        if filters.sort_order not in ("asc", "desc"):
            problems.append({"field": "sort_order", "message": "Must be 'asc' or 'desc'"})
        if problems:
            raise ValidationException("Invalid list parameters", details=problems)
