"""Work item persistence with conditional (compare-and-set) writes."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import NotFoundException, StoreUnavailableException
from src.modules.workflow.registry import WorkflowDefinition

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_errors(operation: str) -> AsyncIterator[None]:
    """Translate connectivity failures into StoreUnavailableException."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.warning("Store unavailable during %s: %s", operation, exc.__class__.__name__)
        raise StoreUnavailableException("The data store is temporarily unavailable") from exc
    except DBAPIError as exc:
        if not exc.connection_invalidated:
            raise
        logger.warning("Store connection lost during %s", operation)
        raise StoreUnavailableException("The data store is temporarily unavailable") from exc
    except OSError as exc:
        logger.warning("Store unreachable during %s: %s", operation, exc.__class__.__name__)
        raise StoreUnavailableException("The data store is temporarily unavailable") from exc


class WorkItemStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(
        self,
        definition: WorkflowDefinition,
        item_id: uuid.UUID,
        *,
        refresh: bool = False,
    ) -> Any | None:
        stmt = select(definition.model).where(definition.model.id == item_id)
        if refresh:
            # Conditional updates bypass the identity map; reload from the row.
            stmt = stmt.execution_options(populate_existing=True)
        async with store_errors("read"):
            result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get(
        self,
        definition: WorkflowDefinition,
        item_id: uuid.UUID,
        *,
        refresh: bool = False,
    ) -> Any:
        item = await self.find(definition, item_id, refresh=refresh)
        if item is None:
            raise NotFoundException(f"{definition.label.capitalize()} {item_id} not found")
        return item

    async def conditional_update(
        self,
        definition: WorkflowDefinition,
        item_id: uuid.UUID,
        conditions: list[Any],
        values: dict[str, Any],
    ) -> bool:
        """Apply ``values`` only if the row still matches ``conditions``.

        Returns True when exactly one row changed. Callers reload the item with
        ``refresh=True`` to observe the result.
        """
        model = definition.model
        stmt = (
            update(model)
            .where(model.id == item_id, *conditions)
            .values(**values, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        async with store_errors("conditional update"):
            result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def fetch_page(self, stmt: Select, *, offset: int, limit: int) -> list[Any]:
        async with store_errors("query"):
            result = await self.db.execute(stmt.offset(offset).limit(limit))
        return list(result.scalars().all())

    async def count(self, stmt: Select) -> int:
        count_query = select(func.count()).select_from(stmt.order_by(None).subquery())
        async with store_errors("count"):
            total = (await self.db.execute(count_query)).scalar()
        return total or 0

    async def rows(self, stmt: Select) -> list[Any]:
        async with store_errors("query"):
            result = await self.db.execute(stmt)
        return list(result.all())
