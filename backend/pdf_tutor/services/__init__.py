from .ai_client import AIClient
from .document_service import DocumentService
from .tutor_service import TutorService, TutorUnavailableError

__all__ = [
    "AIClient",
    "DocumentService",
    "TutorService",
    "TutorUnavailableError",
]
