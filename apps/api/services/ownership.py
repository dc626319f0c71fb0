"""Owner-scoped reads and mutations.

Every statement filters on ``id`` and the owner column together, so an
absent record and a record owned by someone else produce the same 404.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.errors import ApiError

logger = logging.getLogger(__name__)


def _owner_filter(model: Any, entity_id: str, actor_id: str, owner_column: str):
    return (model.id == entity_id, getattr(model, owner_column) == actor_id)


async def fetch_owned(
    db: AsyncSession,
    model: Any,
    entity_id: str,
    actor_id: str,
    *,
    message: str,
    owner_column: str = "owner_id",
    for_update: bool = False,
) -> Any:
    stmt = select(model).where(*_owner_filter(model, entity_id, actor_id, owner_column))
    if for_update:
        stmt = stmt.with_for_update()
    entity = (await db.execute(stmt)).scalar_one_or_none()
    if entity is None:
        raise ApiError(404, message)
    return entity


async def update_owned(
    db: AsyncSession,
    model: Any,
    entity_id: str,
    actor_id: str,
    values: Dict[str, Any],
    *,
    message: str,
    owner_column: str = "owner_id",
) -> Any:
    """Apply ``values`` in one filtered UPDATE and return the updated row."""
    stmt = (
        update(model)
        .where(*_owner_filter(model, entity_id, actor_id, owner_column))
        .values(**values)
        .returning(model)
        .execution_options(populate_existing=True, synchronize_session=False)
    )
    entity = (await db.execute(stmt)).scalar_one_or_none()
    if entity is None:
        await db.rollback()
        raise ApiError(404, message)
    await db.commit()
    return entity


async def delete_owned(
    db: AsyncSession,
    model: Any,
    entity_id: str,
    actor_id: str,
    *,
    message: str,
    owner_column: str = "owner_id",
    cascade: Optional[Iterable[Any]] = None,
) -> Any:
    """Delete an owned row together with its dependents in one transaction.

    The owned row is locked before the ``cascade`` statements run so the
    dependents and the row go away together or not at all.
    """
    entity = await fetch_owned(
        db,
        model,
        entity_id,
        actor_id,
        message=message,
        owner_column=owner_column,
        for_update=True,
    )
    try:
        for stmt in cascade or ():
            await db.execute(stmt)
        await db.execute(delete(model).where(model.id == entity.id))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("owned_delete_failed model=%s id=%s", model.__tablename__, entity_id)
        raise
    return entity
