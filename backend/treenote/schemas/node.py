from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, PositiveInt, field_validator, model_validator

NodeKind = Literal["folder", "note"]


def _require_text(value: str | None) -> str | None:
    if value is not None and not value.strip():
        raise ValueError("name must not be blank")
    return value


class NodeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    kind: NodeKind
    parent_id: PositiveInt | None = None
    content: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str | None:
        return _require_text(value)


class NodeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str | None:
        return _require_text(value)

    @model_validator(mode="after")
    def require_change(self) -> "NodeUpdate":
        if self.name is None and self.content is None:
            raise ValueError("name or content is required")
        return self


class NodeReorder(BaseModel):
    node_id: PositiveInt
    parent_id: PositiveInt | None = None
    sort_order: int = Field(ge=0)


class NodeSummary(BaseModel):
    """Node as listed in the flat tree, without content."""

    id: int
    parent_id: int | None
    kind: NodeKind
    name: str
    sort_order: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NodeDetail(NodeSummary):
    content: str


class NodeTree(NodeSummary):
    children: list["NodeTree"] = []


class NodeTreeResponse(BaseModel):
    roots: list[NodeTree] = []
    count: int = 0


class NodeDeleted(BaseModel):
    success: bool = True
    deleted: int


NodeTree.model_rebuild()
