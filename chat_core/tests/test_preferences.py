from chat_core.config.settings import ChatConfig
from chat_core.sessions.preferences import (
    PreferenceResolver,
    SessionPreferences,
    clamp_temperature,
    parse_temperature,
    resolve_model,
    session_name,
)


def test_clamp_temperature():
    assert clamp_temperature(-5) == 0.1
    assert clamp_temperature(5) == 1.0
    assert clamp_temperature(0.7) == 0.7
    assert clamp_temperature(0.1) == 0.1
    assert clamp_temperature(1.0) == 1.0


def test_resolve_model_fallback():
    allowed = ["a", "b"]
    assert resolve_model("", allowed) == "a"
    assert resolve_model(None, allowed) == "a"
    assert resolve_model("z", allowed) == "a"
    assert resolve_model("b", allowed) == "b"


def test_resolve_model_empty_allow_list_passes_through():
    assert resolve_model("anything", []) == "anything"
    assert resolve_model("", []) == ""


def test_parse_temperature():
    assert parse_temperature("0.8") == 0.8
    assert parse_temperature(" 0.3 ") == 0.3
    assert parse_temperature(1) == 1.0
    assert parse_temperature("warm") == 0.5
    assert parse_temperature(None) == 0.5
    assert parse_temperature(True) == 0.5
    assert parse_temperature("nan") == 0.5


def test_session_preferences_from_mapping():
    prefs = SessionPreferences.from_mapping({"model": " b ", "temperature": "0.9"})
    assert prefs == SessionPreferences(model="b", temperature=0.9)

    assert SessionPreferences.from_mapping(None) == SessionPreferences()
    assert SessionPreferences.from_mapping({"model": "", "temperature": ""}) == SessionPreferences()
    assert SessionPreferences.from_mapping({"temperature": "hot"}).temperature == 0.5


def test_preference_resolver_applies_defaults():
    resolver = PreferenceResolver(ChatConfig(allowed_models=("a", "b")))
    resolved = resolver.resolve(SessionPreferences())
    assert resolved.model == "a"
    assert resolved.temperature == 0.5

    resolved = resolver.resolve(SessionPreferences(model="b", temperature=7))
    assert resolved.to_dict() == {"model": "b", "temperature": 1.0}

    assert resolver.resolve().model == "a"


def test_session_name():
    assert session_name("Smart Chat") == "smart-chat-session"
    assert session_name("  ") == "session"


def test_clamp_temperature_nan_uses_default():
    assert clamp_temperature(float("nan")) == 0.5
    resolver = PreferenceResolver(ChatConfig(allowed_models=("a",)))
    assert resolver.resolve(SessionPreferences(temperature=float("nan"))).temperature == 0.5
