"""Build the folder/note forest for a user from the flat node list."""

from collections.abc import Iterator, Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from treenote.schemas.node import NodeSummary, NodeTree, NodeTreeResponse
from treenote.services import tree_engine


def _order_key(node: Any) -> tuple[int, int]:
    return (node.sort_order, node.id)


def build_tree(nodes: Sequence[Any]) -> list[NodeTree]:
    """Link flat nodes into a forest of fresh NodeTree objects.

    Accepts ORM rows or NodeSummary-like objects. Nodes whose parent is not
    in the input are dropped. Children and roots come out ordered by
    sort_order, then id.
    """
    node_map: dict[int, NodeTree] = {}
    for n in nodes:
        summary = NodeSummary.model_validate(n, from_attributes=True)
        node_map[n.id] = NodeTree(**summary.model_dump(), children=[])

    roots: list[NodeTree] = []
    for n in sorted(nodes, key=_order_key):
        tree = node_map[n.id]
        if n.parent_id is None:
            roots.append(tree)
        else:
            parent = node_map.get(n.parent_id)
            if parent is not None:
                parent.children.append(tree)
    return roots


def walk(forest: Sequence[NodeTree], depth: int = 0) -> Iterator[tuple[int, NodeTree]]:
    """Depth-first pre-order traversal yielding (depth, node)."""
    for node in forest:
        yield depth, node
        yield from walk(node.children, depth + 1)


async def get_node_tree(db: AsyncSession, owner_id: int) -> NodeTreeResponse:
    nodes = await tree_engine.list_tree(db, owner_id)
    roots = build_tree(nodes)
    return NodeTreeResponse(roots=roots, count=sum(1 for _ in walk(roots)))
