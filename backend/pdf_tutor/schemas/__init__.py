from .user import UserCreate, UserInDB, UserLogin, Token
from .document import DocumentResponse, DocumentList, UploadResponse
from .chat import ChatRequest, ChatReply, ChatDetail, ChatMessageResponse

__all__ = [
    "UserCreate",
    "UserInDB",
    "UserLogin",
    "Token",
    "DocumentResponse",
    "DocumentList",
    "UploadResponse",
    "ChatRequest",
    "ChatReply",
    "ChatDetail",
    "ChatMessageResponse",
]
