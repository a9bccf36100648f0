"""Optional language-model responder path."""

from .base import SpeechResponder
from .openrouter import OpenRouterResponder
from .prompts import build_system_prompt
from .service import ChatReply, ChatService, parse_strict_json

__all__ = [
    "ChatReply",
    "ChatService",
    "OpenRouterResponder",
    "SpeechResponder",
    "build_system_prompt",
    "parse_strict_json",
]
