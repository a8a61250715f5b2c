"""Tests for the tutor service with the OpenAI client replaced by a stub."""

from types import SimpleNamespace

import pytest

from pdf_tutor.services.ai_client import AIClient
from pdf_tutor.services.tutor_service import (
    ACTION_SCHEMA,
    TutorService,
    TutorUnavailableError,
    build_document_context,
    extract_inline_action,
)


class StubAIClient:
    def __init__(self, text="Photosynthesis happens in chloroplasts.", action=None):
        self.text = text
        self.action = action
        self.text_error = None
        self.object_error = None
        self.fallback_text = "A short fallback answer."
        self.fallback_error = None
        self.prompts = []

    def generate_text(self, prompt, *, model=None, max_output_tokens=None):
        self.prompts.append(("text", prompt))
        if self.text_error:
            raise self.text_error
        return self.text

    def generate_object(self, prompt, *, schema, name, model=None):
        self.prompts.append(("object", prompt))
        assert schema is ACTION_SCHEMA
        if self.object_error:
            raise self.object_error
        return self.action

    def generate_chat_completion(self, prompt, *, model=None, max_output_tokens=None):
        self.prompts.append(("fallback", prompt))
        if self.fallback_error:
            raise self.fallback_error
        return self.fallback_text


def test_reply_carries_answer_and_action():
    action = {"action": "highlight", "pageNumber": 2, "coordinates": {"x": 10, "y": 15, "width": 70, "height": 8}}
    client = StubAIClient(action=action)
    reply = TutorService(client).generate_reply("What is photosynthesis?", "Document: notes", [], current_page=2)

    assert reply.response == "Photosynthesis happens in chloroplasts."
    assert reply.action == action
    assert not reply.used_fallback
    assert "Current page: 2" in client.prompts[0][1]
    assert "Document: notes" in client.prompts[0][1]


def test_prompt_includes_only_recent_history():
    client = StubAIClient(action={"action": "navigate", "pageNumber": 1})
    history = [{"role": "user", "content": f"question {i}"} for i in range(8)]

    TutorService(client).generate_reply("next", None, history)

    prompt = client.prompts[0][1]
    assert "question 7" in prompt
    assert "question 2" not in prompt
    assert "No document content available" in prompt


def test_action_failure_keeps_answer():
    client = StubAIClient()
    client.object_error = ValueError("Model returned invalid JSON for pdf_action")

    reply = TutorService(client).generate_reply("Explain page 3")

    assert reply.response == "Photosynthesis happens in chloroplasts."
    assert reply.action is None


def test_inline_action_is_stripped_and_used():
    client = StubAIClient(text='See the heading [ACTION:HIGHLIGHT:page=1:x=10:y=15:width=70:height=8] here.')
    client.object_error = RuntimeError("timeout")

    reply = TutorService(client).generate_reply("Where is the title?")

    assert "[ACTION" not in reply.response
    assert reply.action == {
        "action": "highlight",
        "pageNumber": 1,
        "coordinates": {"x": 10, "y": 15, "width": 70, "height": 8},
    }


def test_falls_back_when_answer_fails():
    client = StubAIClient()
    client.text_error = RuntimeError("model overloaded")

    reply = TutorService(client).generate_reply("Help")

    assert reply.used_fallback
    assert reply.response == "A short fallback answer."
    assert reply.action is None
    assert [kind for kind, _ in client.prompts] == ["text", "fallback"]


def test_unavailable_when_fallback_fails_too():
    client = StubAIClient()
    client.text_error = RuntimeError("model overloaded")
    client.fallback_error = RuntimeError("still overloaded")

    with pytest.raises(TutorUnavailableError):
        TutorService(client).generate_reply("Help")


def test_unconfigured_client_raises_unavailable():
    service = TutorService(AIClient(api_key=""))
    with pytest.raises(TutorUnavailableError):
        service.generate_reply("Help")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("[ACTION:NAVIGATE:page=4]", {"action": "navigate", "pageNumber": 4}),
        (
            '[ACTION:CIRCLE:page=2:x=25:y=40:width=15:height=10:text="42"]',
            {
                "action": "circle",
                "pageNumber": 2,
                "coordinates": {"x": 25, "y": 40, "width": 15, "height": 10},
                "text": "42",
            },
        ),
        (
            "[ACTION:underline:x=20:y=50.5:width=60:height=3]",
            {"action": "underline", "coordinates": {"x": 20, "y": 50.5, "width": 60, "height": 3}},
        ),
    ],
)
def test_extract_inline_action(text, expected):
    cleaned, action = extract_inline_action(f"Answer. {text}")
    assert cleaned == "Answer."
    assert action == expected


def test_extract_inline_action_without_tag():
    assert extract_inline_action("Plain answer") == ("Plain answer", None)


def test_extract_inline_action_unknown_kind():
    cleaned, action = extract_inline_action("Look [ACTION:ZOOM:page=2]")
    assert cleaned == "Look"
    assert action is None


def test_document_context_with_text():
    context = build_document_context("notes.pdf", "x" * 200)
    assert "Full Document Content" in context
    assert '"notes.pdf"' in context


@pytest.mark.parametrize("text", [None, "", "too short"])
def test_document_context_without_text(text):
    context = build_document_context("scan.pdf", text)
    assert "could not be extracted" in context


def test_extract_response_text():
    assert AIClient.extract_response_text(SimpleNamespace(output_text="  hello \n")) == "hello"
    assert AIClient.extract_response_text(None) == ""


def test_unconfigured_client_status():
    client = AIClient(api_key="")
    assert not client.is_configured
    assert client.get_initialization_status()["status"] == "ready"
