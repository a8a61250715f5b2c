"""
Tutor Service - answers questions about an uploaded PDF and proposes a viewer action.

Each reply is produced in two model calls:
1. a free-text answer grounded in the document text
2. a structured action (highlight / circle / underline / navigate) requested
   under a JSON schema

The action is returned exactly as the model produced it. Validation happens
in ``pdf_tutor.annotations.actions`` so that a malformed action can be dropped
without losing the answer.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pdf_tutor.core.config import settings
from pdf_tutor.services.ai_client import AIClient

logger = logging.getLogger(__name__)

ACTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "action": {"type": "string", "enum": ["highlight", "circle", "underline", "navigate"]},
        "pageNumber": {"type": "integer", "minimum": 1},
        "coordinates": {
            "type": "object",
            "properties": {
                "x": {"type": "number"},
                "y": {"type": "number"},
                "width": {"type": "number"},
                "height": {"type": "number"},
            },
            "required": ["x", "y", "width", "height"],
        },
        "text": {"type": "string"},
    },
    "required": ["action"],
}

_INLINE_ACTION = re.compile(r"\[ACTION:([^\]]+)\]")
_INLINE_KINDS = {"HIGHLIGHT": "highlight", "CIRCLE": "circle", "UNDERLINE": "underline", "NAVIGATE": "navigate"}


class TutorUnavailableError(RuntimeError):
    """Neither the tutor model nor the fallback produced an answer."""


@dataclass
class TutorReply:
    response: str
    action: Optional[Dict[str, Any]] = None
    used_fallback: bool = False


def build_document_context(document_name: str, extracted_text: Optional[str]) -> str:
    has_text = bool(extracted_text) and len(extracted_text) > settings.EXTRACTED_TEXT_MIN_CHARS
    if has_text:
        return (
            f'Document: "{document_name}"\n\n'
            f"Full Document Content:\n{extracted_text}\n\n"
            "Please provide specific, detailed answers based on the actual content of this document."
        )
    return (
        f'Document: "{document_name}"\n'
        "Note: This PDF document's text content could not be extracted, so I can only provide "
        "general guidance about the document type and structure."
    )


def _parse_number(raw: str) -> Optional[float]:
    try:
        value = float(raw)
    except ValueError:
        return None
    return int(value) if value.is_integer() else value


def extract_inline_action(text: str) -> Tuple[str, Optional[Dict[str, Any]]]:
    """Strip an ``[ACTION:KIND:page=1:x=..]`` tag from an answer and decode it.

    Returns the cleaned text and the action mapping, or ``None`` when the text
    carries no recognisable tag.
    """
    match = _INLINE_ACTION.search(text or "")
    if not match:
        return text, None

    cleaned = _INLINE_ACTION.sub("", text, count=1).strip()
    parts = match.group(1).split(":")
    kind = _INLINE_KINDS.get(parts[0].strip().upper())
    if kind is None:
        return cleaned, None

    fields: Dict[str, str] = {}
    for part in parts[1:]:
        key, sep, value = part.partition("=")
        if sep:
            fields[key.strip().lower()] = value.strip()

    action: Dict[str, Any] = {"action": kind}
    if "page" in fields:
        page = _parse_number(fields["page"])
        if page is not None:
            action["pageNumber"] = page
    if kind != "navigate":
        coordinates = {}
        for name in ("x", "y", "width", "height"):
            if name in fields:
                value = _parse_number(fields[name])
                if value is not None:
                    coordinates[name] = value
        action["coordinates"] = coordinates
        if fields.get("text"):
            action["text"] = fields["text"].strip('"')
    return cleaned, action


class TutorService:
    def __init__(self, client: Optional[AIClient] = None):
        self.client = client or AIClient()

    def _answer_prompt(
        self,
        message: str,
        document_context: Optional[str],
        history: List[Dict[str, str]],
        current_page: int,
    ) -> str:
        recent = history[-settings.PROMPT_HISTORY_LIMIT:] if history else []
        return f"""
You are an AI tutor helping students understand their PDF documents.
Be helpful, clear, and educational.

Document context: {document_context or 'No document content available'}

Previous conversation: {json.dumps(recent) if recent else 'No previous messages'}

Current page: {current_page}

Student question: {message}

Please provide a helpful response that references specific page numbers when relevant.
"""

    def _action_prompt(self, message: str, answer: str, current_page: int) -> str:
        return f"""
Based on the user's request and document content, determine if you should take a PDF action.

IMPORTANT: For coordinates, use realistic percentages:
- x: 0-100 (left to right position)
- y: 0-100 (top to bottom position)
- width: 10-80 (reasonable width)
- height: 5-15 (reasonable height for text)

For highlights: Use coordinates that would cover text areas.
For circles: Use coordinates that would encompass important numbers/sections.
For underlines: Use thin height (2-5) positioned under text.

Current page: {current_page}

Examples:
- Heading highlight: x:10, y:15, width:70, height:8
- Number circle: x:25, y:40, width:15, height:10
- Text underline: x:20, y:50, width:60, height:3

Student question: {message}
AI response: {answer}

Actions available:
- highlight: highlight text on a page
- circle: circle an area on a page
- underline: underline text on a page
- navigate: go to a specific page

If no visual annotation is needed, use navigate action to relevant page.
"""

    def _fallback_prompt(self, message: str) -> str:
        return f"""
You are an AI tutor. Please respond helpfully to this question: {message}

Keep your response concise and educational.
"""

    def generate_reply(
        self,
        message: str,
        document_context: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
        current_page: int = 1,
    ) -> TutorReply:
        history = history or []
        try:
            answer = self.client.generate_text(
                self._answer_prompt(message, document_context, history, current_page),
                max_output_tokens=settings.TUTOR_MAX_OUTPUT_TOKENS,
            )
        except Exception as e:
            logger.error(f"Tutor answer generation failed: {e}")
            return self._fallback_reply(message)

        answer, inline_action = extract_inline_action(answer)

        action: Optional[Dict[str, Any]] = None
        try:
            action = self.client.generate_object(
                self._action_prompt(message, answer, current_page),
                schema=ACTION_SCHEMA,
                name="pdf_action",
            )
        except Exception as e:
            logger.warning(f"Tutor action generation failed, answering without an action: {e}")

        return TutorReply(response=answer, action=action or inline_action)

    def _fallback_reply(self, message: str) -> TutorReply:
        try:
            answer = self.client.generate_chat_completion(
                self._fallback_prompt(message),
                max_output_tokens=settings.TUTOR_FALLBACK_MAX_OUTPUT_TOKENS,
            )
        except Exception as e:
            logger.error(f"Fallback tutor generation failed: {e}")
            raise TutorUnavailableError("Failed to generate tutor response") from e
        return TutorReply(response=answer, action=None, used_fallback=True)
