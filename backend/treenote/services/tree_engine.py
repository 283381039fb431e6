"""Structural operations on a user's folder/note forest.

Every public coroutine runs as one transaction: validation reads, sibling
shifts and the final write commit together or not at all. Structural edits
(create, move, delete) first lock the owner's row, so concurrent edits of the
same owner serialize while different owners never contend.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from treenote.config import settings
from treenote.errors import ConstraintViolation, CycleDetected, InvalidOperation, NotFound
from treenote.models import Node
from treenote.models.node import FOLDER, NODE_KINDS, utcnow
from treenote.services import node_store
from treenote.services.node_store import transaction

logger = logging.getLogger(__name__)


async def _lock_owner(db: AsyncSession, owner_id: int) -> None:
    if await node_store.lock_owner(db, owner_id) is None:
        raise NotFound("Owner not found")


async def _get_node(db: AsyncSession, owner_id: int, node_id: int) -> Node:
    node = await node_store.select_one(db, owner_id, node_id)
    if node is None:
        raise NotFound("Node not found")
    return node


async def _get_parent(db: AsyncSession, owner_id: int, parent_id: int) -> Node:
    parent = await node_store.select_one(db, owner_id, parent_id)
    if parent is None:
        raise NotFound("Parent node not found")
    return parent


def _require_folder(parent: Node) -> None:
    if parent.kind != FOLDER:
        raise InvalidOperation("Parent must be a folder")


async def _check_not_descendant(
    db: AsyncSession, owner_id: int, node_id: int, new_parent_id: int
) -> None:
    """Walk up from the new parent; reaching node_id means the move closes a cycle."""
    parents = await node_store.parent_map(db, owner_id)
    visited: set[int] = set()
    current: int | None = new_parent_id
    while current is not None:
        if current == node_id:
            raise CycleDetected("Cannot move a node into its own subtree")
        if current in visited or len(visited) > len(parents):
            logger.error("Stored tree already contains a cycle", extra={"owner_id": owner_id, "node_id": current})
            raise ConstraintViolation("Stored tree contains a cycle")
        visited.add(current)
        current = parents.get(current)


async def create_node(
    db: AsyncSession,
    owner_id: int,
    kind: str,
    name: str,
    parent_id: int | None = None,
    content: str | None = None,
) -> Node:
    """Create a node appended at the end of its sibling group."""
    if kind not in NODE_KINDS:
        raise InvalidOperation(f"Unknown node kind: {kind}")
    async with transaction(db):
        await _lock_owner(db, owner_id)
        if parent_id is not None:
            _require_folder(await _get_parent(db, owner_id, parent_id))
        last = await node_store.max_sort_order(db, owner_id, parent_id)
        node = Node(
            user_id=owner_id,
            parent_id=parent_id,
            kind=kind,
            name=name,
            content="" if kind == FOLDER else (content or ""),
            sort_order=0 if last is None else last + 1,
        )
        await node_store.insert(db, node)
    return node


def _apply_content(node: Node, content: str) -> bool:
    if node.kind == FOLDER:
        if settings.strict_content_edits:
            raise InvalidOperation("Folders have no content")
        return False
    node.content = content
    return True


async def update_node(
    db: AsyncSession,
    owner_id: int,
    node_id: int,
    name: str | None = None,
    content: str | None = None,
) -> Node:
    """Rename and/or edit content in one transaction.

    Folders carry no content; content edits aimed at them are ignored unless
    strict_content_edits is set.
    """
    async with transaction(db):
        node = await _get_node(db, owner_id, node_id)
        changed = False
        if name is not None:
            node.name = name
            changed = True
        if content is not None:
            changed = _apply_content(node, content) or changed
        if changed:
            node.updated_at = utcnow()
    return node


async def rename_node(db: AsyncSession, owner_id: int, node_id: int, name: str) -> Node:
    return await update_node(db, owner_id, node_id, name=name)


async def edit_content(db: AsyncSession, owner_id: int, node_id: int, content: str) -> Node:
    return await update_node(db, owner_id, node_id, content=content)


async def move_node(
    db: AsyncSession,
    owner_id: int,
    node_id: int,
    new_parent_id: int | None,
    target_sort_order: int,
) -> Node:
    """Move node under new_parent_id (None for root) at rank target_sort_order.

    Siblings at or after the target rank shift up by one; the destination
    group is written back densely so rank and sort_order agree. Gaps left
    behind in the source group are harmless, only relative order matters.
    """
    async with transaction(db):
        await _lock_owner(db, owner_id)
        node = await _get_node(db, owner_id, node_id)
        if new_parent_id is not None:
            parent = await _get_parent(db, owner_id, new_parent_id)
            if new_parent_id == node_id:
                raise InvalidOperation("Node cannot be its own parent")
            try:
                await _check_not_descendant(db, owner_id, node_id, new_parent_id)
            except CycleDetected:
                logger.warning(
                    "Rejected move into own subtree",
                    extra={"owner_id": owner_id, "node_id": node_id, "parent_id": new_parent_id},
                )
                raise
            _require_folder(parent)
        if target_sort_order < 0:
            raise InvalidOperation("sort_order must be non-negative")

        siblings = await node_store.select_siblings(db, owner_id, new_parent_id, exclude_id=node_id)
        position = min(target_sort_order, len(siblings))
        for rank, sibling in enumerate(siblings):
            wanted = rank if rank < position else rank + 1
            if sibling.sort_order != wanted:
                sibling.sort_order = wanted

        node.parent_id = new_parent_id
        node.sort_order = position
        node.updated_at = utcnow()
        logger.info(
            "Moved node",
            extra={"owner_id": owner_id, "node_id": node_id, "parent_id": new_parent_id, "sort_order": position},
        )
    return node


async def _get_descendant_ids(db: AsyncSession, owner_id: int, node_id: int) -> set[int]:
    result: set[int] = set()
    frontier = [node_id]
    while frontier:
        next_ids = await node_store.child_ids(db, owner_id, frontier)
        frontier = [i for i in next_ids if i not in result and i != node_id]
        result.update(frontier)
    return result


async def delete_subtree(db: AsyncSession, owner_id: int, node_id: int) -> int:
    """Delete a node and all of its descendants in one batch. Returns the count removed."""
    async with transaction(db):
        await _lock_owner(db, owner_id)
        await _get_node(db, owner_id, node_id)
        ids = await _get_descendant_ids(db, owner_id, node_id)
        ids.add(node_id)
        deleted = await node_store.delete_many(db, owner_id, ids)
        if deleted != len(ids):
            raise ConstraintViolation("Subtree changed during delete")
    logger.info("Deleted subtree", extra={"owner_id": owner_id, "node_id": node_id, "count": deleted})
    return deleted


async def list_tree(db: AsyncSession, owner_id: int) -> list[Node]:
    """All of the owner's nodes, ordered by sort_order within each sibling group."""
    async with transaction(db):
        nodes = await node_store.select_all(db, owner_id)
    return nodes


async def fetch_node(db: AsyncSession, owner_id: int, node_id: int) -> Node:
    async with transaction(db):
        node = await _get_node(db, owner_id, node_id)
    return node
