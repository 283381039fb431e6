"""Owner-scoped persistence primitives for the nodes table."""

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from treenote.errors import ConstraintViolation
from treenote.models import Node, User

logger = logging.getLogger(__name__)


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back everything on any failure."""
    try:
        yield db
        await db.flush()
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Integrity error, transaction rolled back", extra={"error": str(e.orig)})
        raise ConstraintViolation("Storage constraint violated") from e
    except BaseException:
        await db.rollback()
        raise


async def lock_owner(db: AsyncSession, owner_id: int) -> User | None:
    """Lock the owner's row so structural edits of one owner serialize.

    SQLite has no row locks; there the engine opens every transaction with
    BEGIN IMMEDIATE instead (see database.make_engine).
    """
    result = await db.execute(
        select(User).where(User.id == owner_id).with_for_update()
    )
    return result.scalar_one_or_none()


def _sibling_filter(owner_id: int, parent_id: int | None):
    parent_clause = Node.parent_id.is_(None) if parent_id is None else Node.parent_id == parent_id
    return (Node.user_id == owner_id, parent_clause)


async def insert(db: AsyncSession, node: Node) -> Node:
    db.add(node)
    await db.flush()
    return node


async def select_one(db: AsyncSession, owner_id: int, node_id: int) -> Node | None:
    result = await db.execute(
        select(Node).where(Node.id == node_id, Node.user_id == owner_id)
    )
    return result.scalar_one_or_none()


async def select_all(db: AsyncSession, owner_id: int) -> list[Node]:
    result = await db.execute(
        select(Node)
        .where(Node.user_id == owner_id)
        .order_by(Node.parent_id, Node.sort_order, Node.id)
    )
    return list(result.scalars().all())


async def select_siblings(
    db: AsyncSession, owner_id: int, parent_id: int | None, exclude_id: int | None = None
) -> list[Node]:
    q = select(Node).where(*_sibling_filter(owner_id, parent_id))
    if exclude_id is not None:
        q = q.where(Node.id != exclude_id)
    result = await db.execute(q.order_by(Node.sort_order, Node.id))
    return list(result.scalars().all())


async def max_sort_order(db: AsyncSession, owner_id: int, parent_id: int | None) -> int | None:
    result = await db.execute(
        select(func.max(Node.sort_order)).where(*_sibling_filter(owner_id, parent_id))
    )
    return result.scalar_one_or_none()


async def parent_map(db: AsyncSession, owner_id: int) -> dict[int, int | None]:
    result = await db.execute(
        select(Node.id, Node.parent_id).where(Node.user_id == owner_id)
    )
    return {node_id: parent_id for node_id, parent_id in result.all()}


async def child_ids(db: AsyncSession, owner_id: int, parent_ids: Iterable[int]) -> list[int]:
    result = await db.execute(
        select(Node.id).where(
            Node.user_id == owner_id,
            Node.parent_id.in_(list(parent_ids)),
        )
    )
    return list(result.scalars().all())


async def delete_many(db: AsyncSession, owner_id: int, ids: Iterable[int]) -> int:
    ids = list(ids)
    if not ids:
        return 0
    result = await db.execute(
        delete(Node)
        .where(Node.user_id == owner_id, Node.id.in_(ids))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
