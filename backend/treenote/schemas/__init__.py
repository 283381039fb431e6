from treenote.schemas.auth import AuthConfig, Token, TokenData, UserCreate, UserLogin, UserResponse
from treenote.schemas.node import (
    NodeCreate,
    NodeDeleted,
    NodeDetail,
    NodeReorder,
    NodeSummary,
    NodeTree,
    NodeTreeResponse,
    NodeUpdate,
)

__all__ = [
    "AuthConfig",
    "Token",
    "TokenData",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "NodeCreate",
    "NodeDeleted",
    "NodeDetail",
    "NodeReorder",
    "NodeSummary",
    "NodeTree",
    "NodeTreeResponse",
    "NodeUpdate",
]
