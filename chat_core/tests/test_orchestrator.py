"""测试补全编排。"""

import pytest

from chat_core.agents.orchestrator import CompletionOrchestrator
from chat_core.domain.exceptions import CompletionBackendError, UnauthorizedError
from chat_core.domain.models import ChatChoice, ChatMessage, ChatResult, ChatUsage


class FakeBackend:
    """模拟的补全后端，记录收到的请求。"""
    name = "fake"

    def __init__(self, content="fine", choices=True, error=None, role="assistant"):
        self.requests = []
        self.timeouts = []
        self._content = content
        self._choices = choices
        self._error = error
        self._role = role

    def chat(self, req, timeout=None):
        self.requests.append(req)
        self.timeouts.append(timeout)
        if self._error:
            raise self._error
        choices = []
        if self._choices:
            choices = [ChatChoice(index=0, message=ChatMessage(role=self._role, content=self._content))]
        return ChatResult(
            model=req.model,
            choices=choices,
            usage=ChatUsage(prompt_tokens=3, completion_tokens=1, total_tokens=4),
            raw={},
        )


def test_end_to_end_scenario(store):
    backend = FakeBackend(content="fine")
    orchestrator = CompletionOrchestrator(store, backend)

    chat = store.new_chat("u", "")
    assert chat.title == "New chat"

    text = "hello there, how are you today friend"
    store.append_message("u", chat.id, "user", text)
    after_user = store.get_chat("u", chat.id).summary
    assert after_user.title == text[:32]

    message, usage = orchestrator.run_completion("u", chat.id, "model-x", 0.5)
    assert message.role == "assistant"
    assert message.content == "fine"
    assert usage.total_tokens == 4

    view = store.get_chat("u", chat.id)
    assert [(m.role, m.content) for m in view.messages] == [("user", text), ("assistant", "fine")]
    assert view.summary.updated_at > after_user.updated_at
    assert view.summary.title == text[:32]


def test_backend_receives_projected_history(store):
    backend = FakeBackend()
    orchestrator = CompletionOrchestrator(store, backend)
    chat = store.new_chat("u", "")
    store.append_message("u", chat.id, "user", "one")
    store.append_message("u", chat.id, "assistant", "two")
    store.append_message("u", chat.id, "user", "three")

    orchestrator.run_completion("u", chat.id, "m", 0.3, timeout=5.0)

    req = backend.requests[0]
    assert req.model == "m"
    assert req.temperature == 0.3
    assert [(m.role, m.content) for m in req.messages] == [
        ("user", "one"),
        ("assistant", "two"),
        ("user", "three"),
    ]
    assert backend.timeouts == [5.0]


def test_reply_sets_title_when_still_default(store):
    orchestrator = CompletionOrchestrator(store, FakeBackend(content="A reply that is long enough to be cut here"))
    chat = store.new_chat("u", "")
    orchestrator.run_completion("u", chat.id, "m", 0.5)
    assert store.get_chat("u", chat.id).summary.title == "A reply that is long enough to b"


def test_unauthorized_fails_before_backend_call(store):
    backend = FakeBackend()
    orchestrator = CompletionOrchestrator(store, backend)
    chat = store.new_chat("alice", "")
    with pytest.raises(UnauthorizedError):
        orchestrator.run_completion("bob", chat.id, "m", 0.5)
    assert backend.requests == []


def test_backend_failure_leaves_user_message(store):
    error = CompletionBackendError(code="API_ERROR", message="status 500")
    orchestrator = CompletionOrchestrator(store, FakeBackend(error=error))
    chat = store.new_chat("u", "")
    store.append_message("u", chat.id, "user", "hi")
    with pytest.raises(CompletionBackendError):
        orchestrator.run_completion("u", chat.id, "m", 0.5)
    messages = store.get_chat("u", chat.id).messages
    assert [(m.role, m.content) for m in messages] == [("user", "hi")]


def test_no_choices_is_backend_error(store):
    orchestrator = CompletionOrchestrator(store, FakeBackend(choices=False))
    chat = store.new_chat("u", "")
    store.append_message("u", chat.id, "user", "hi")
    with pytest.raises(CompletionBackendError) as exc:
        orchestrator.run_completion("u", chat.id, "m", 0.5)
    assert exc.value.code == "NO_CHOICES"
    assert len(store.get_chat("u", chat.id).messages) == 1


def test_unexpected_reply_role_stored_as_assistant(store):
    orchestrator = CompletionOrchestrator(store, FakeBackend(content="答复", role="system"))
    chat = store.new_chat("u", "")
    store.append_message("u", chat.id, "user", "hi")
    message, _ = orchestrator.run_completion("u", chat.id, "m", 0.5)
    assert message.role == "assistant"
    messages = store.get_chat("u", chat.id).messages
    assert [(m.role, m.content) for m in messages] == [("user", "hi"), ("assistant", "答复")]
