from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from treenote.database import get_db
from treenote.dependencies import get_current_user
from treenote.models import Node, User
from treenote.schemas.node import (
    NodeCreate,
    NodeDeleted,
    NodeDetail,
    NodeReorder,
    NodeSummary,
    NodeTreeResponse,
    NodeUpdate,
)
from treenote.services import tree_engine
from treenote.services.node_tree import get_node_tree

router = APIRouter(prefix="/nodes", tags=["nodes"])

NodeId = Annotated[int, Path(gt=0)]


@router.get("", response_model=list[NodeSummary])
async def list_nodes(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[Node]:
    """Flat node list without content, ordered within each sibling group."""
    return await tree_engine.list_tree(db, user.id)


@router.get("/tree", response_model=NodeTreeResponse)
async def get_tree(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NodeTreeResponse:
    return await get_node_tree(db, user.id)


@router.get("/{node_id}", response_model=NodeDetail)
async def get_node(
    node_id: NodeId,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Node:
    return await tree_engine.fetch_node(db, user.id, node_id)


@router.post("", response_model=NodeDetail, status_code=201)
async def create_node(
    data: NodeCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Node:
    return await tree_engine.create_node(
        db,
        user.id,
        kind=data.kind,
        name=data.name,
        parent_id=data.parent_id,
        content=data.content,
    )


# Must be registered before /{node_id}
@router.patch("/reorder", response_model=NodeDetail)
async def reorder_node(
    data: NodeReorder,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Node:
    return await tree_engine.move_node(
        db, user.id, data.node_id, data.parent_id, data.sort_order
    )


@router.patch("/{node_id}", response_model=NodeDetail)
async def update_node(
    node_id: NodeId,
    data: NodeUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Node:
    return await tree_engine.update_node(
        db, user.id, node_id, name=data.name, content=data.content
    )


@router.delete("/{node_id}", response_model=NodeDeleted)
async def delete_node(
    node_id: NodeId,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NodeDeleted:
    deleted = await tree_engine.delete_subtree(db, user.id, node_id)
    return NodeDeleted(deleted=deleted)
