import json
import logging
from typing import List, Dict, Any, Optional

import openai

from pdf_tutor.core.config import settings

logger = logging.getLogger(__name__)


class AIClient:
    def __init__(self, api_key: Optional[str] = None, chat_model: Optional[str] = None):
        self.openai_client = None
        self.initialization_status = "initializing"
        self.initialization_message = "Setting up OpenAI API..."

        self.chat_model = chat_model or settings.TUTOR_MODEL
        self.fallback_model = settings.TUTOR_FALLBACK_MODEL

        api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        if not api_key or api_key.startswith("sk-your_"):
            self.initialization_status = "ready"
            self.initialization_message = "AI Service Ready (No OpenAI API Key)"
            logger.info("AI client initialized without API key")
            return

        try:
            self.openai_client = openai.OpenAI(api_key=api_key)
            self.initialization_status = "ready"
            self.initialization_message = "OpenAI API ready"
            logger.info("OpenAI client initialized for model %s", self.chat_model)
        except Exception as e:
            self.initialization_status = "error"
            self.initialization_message = f"Failed to initialize OpenAI API: {str(e)}"
            logger.error(f"Failed to initialize OpenAI API: {str(e)}")

    @property
    def is_configured(self) -> bool:
        return self.openai_client is not None

    def _require_client(self):
        if not self.openai_client:
            raise ValueError("OpenAI client is not configured")

    def format_messages_for_responses(self, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        normalized: List[Dict[str, Any]] = []
        for message in messages:
            role = message.get("role", "user")
            content = message.get("content", "")
            normalized.append({"role": role, "content": content})
        return normalized

    def create_response(
        self,
        *,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        **extra_params: Any,
    ):
        self._require_client()

        payload: Dict[str, Any] = {
            "model": model or self.chat_model,
            "input": self.format_messages_for_responses(messages),
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_output_tokens is not None:
            payload["max_output_tokens"] = max_output_tokens
        payload.update({k: v for k, v in extra_params.items() if v is not None})

        return self.openai_client.responses.create(**payload)

    def generate_text(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        response = self.create_response(
            messages=[{"role": "user", "content": prompt}],
            model=model,
            max_output_tokens=max_output_tokens,
        )
        return self.extract_response_text(response)

    def generate_object(
        self,
        prompt: str,
        *,
        schema: Dict[str, Any],
        name: str,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Ask for JSON matching ``schema``; the decoded object is returned unvalidated."""
        response = self.create_response(
            messages=[{"role": "user", "content": prompt}],
            model=model,
            text={"format": {"type": "json_schema", "name": name, "schema": schema, "strict": False}},
        )
        raw = self.extract_response_text(response)
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Model returned invalid JSON for {name}: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError(f"Model returned {type(parsed).__name__} for {name}, expected an object")
        return parsed

    def generate_chat_completion(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        self._require_client()

        params: Dict[str, Any] = {
            "model": model or self.fallback_model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if max_output_tokens is not None:
            params["max_tokens"] = max_output_tokens

        completion = self.openai_client.chat.completions.create(**params)
        choices = getattr(completion, "choices", None) or []
        if not choices:
            return ""
        return (choices[0].message.content or "").strip()

    @staticmethod
    def extract_response_text(response: Any) -> str:
        if not response:
            return ""
        text = getattr(response, "output_text", "") or ""
        return text.strip()

    def get_initialization_status(self) -> Dict[str, Any]:
        return {
            "status": self.initialization_status,
            "message": self.initialization_message,
            "chat_model": self.chat_model,
            "fallback_model": self.fallback_model,
        }
