import pytest

from modules.ai_manager.state import (
    ConversationSummary,
    SessionMessage,
    SessionState,
    StreamStatus,
    derive_title,
)


@pytest.mark.parametrize(
    "text, title",
    [
        ("What is the weather like in Paris today?", "What is the weather like"),
        ("  Hello   world  ", "Hello world"),
        ("", None),
        ("   ", None),
        (None, None),
    ],
)
def test_derive_title(text, title):
    assert derive_title(text) == title


def test_with_message_replaces_by_id():
    message = SessionMessage(id="a1", role="assistant", content="Hel")
    state = SessionState().with_message(SessionMessage(id="u1", role="user", content="Hi")).with_message(message)

    state = state.with_message(message.model_copy(update={"content": "Hello"}))

    assert [(m.id, m.content) for m in state.messages] == [("u1", "Hi"), ("a1", "Hello")]


def test_without_message():
    state = SessionState().with_message(SessionMessage(id="u1", role="user", content="Hi"))
    assert state.without_message("u1").messages == ()


def test_with_conversation_prepends_new_and_replaces_existing():
    state = SessionState().with_conversation(ConversationSummary(id="c1"))
    state = state.with_conversation(ConversationSummary(id="c2"), prepend=True)
    state = state.with_conversation(ConversationSummary(id="c1", title="Renamed"))

    assert [(c.id, c.title) for c in state.conversations] == [
        ("c2", "New conversation"),
        ("c1", "Renamed"),
    ]


def test_state_is_immutable():
    state = SessionState()
    with pytest.raises(Exception):
        state.status = StreamStatus.STREAMING
    assert state.evolve(status=StreamStatus.STREAMING).status == StreamStatus.STREAMING
    assert state.status == StreamStatus.IDLE


def test_last_user_message():
    state = SessionState(messages=(
        SessionMessage(role="user", content="first"),
        SessionMessage(role="assistant", content="reply"),
        SessionMessage(role="user", content="second"),
        SessionMessage(role="assistant", content="reply"),
    ))
    assert state.last_user_message().content == "second"
    assert SessionState().last_user_message() is None
