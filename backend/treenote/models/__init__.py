from treenote.models.node import NODE_KINDS, Node
from treenote.models.user import User

__all__ = ["User", "Node", "NODE_KINDS"]
