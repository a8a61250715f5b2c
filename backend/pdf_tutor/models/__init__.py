from .user import User
from .document import Document
from .chat import Chat, Message

__all__ = [
    "User",
    "Document",
    "Chat",
    "Message",
]
