from . import auth, documents, chat

__all__ = ["auth", "documents", "chat"]
