from chat_core.sessions.preferences import (
    PreferenceResolver,
    ResolvedPreferences,
    SessionPreferences,
    clamp_temperature,
    resolve_model,
)

__all__ = [
    "PreferenceResolver",
    "ResolvedPreferences",
    "SessionPreferences",
    "clamp_temperature",
    "resolve_model",
]
