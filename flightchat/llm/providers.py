from typing import List

from langchain_core.language_models import BaseChatModel
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from flightchat.config import Settings

JSON_MODE = {"type": "json_object"}


def _openai(settings: Settings, model: str) -> ChatOpenAI:
    return ChatOpenAI(
        model=model,
        temperature=0,
        api_key=settings.OPENAI_API_KEY,
        timeout=30,
        max_retries=1,
    )


def _gemini(settings: Settings) -> ChatOpenAI:
    # Gemini speaks the OpenAI chat-completions protocol at this base URL
    return ChatOpenAI(
        model=settings.GEMINI_MODEL,
        temperature=0,
        api_key=settings.GEMINI_API_KEY,
        base_url=settings.GEMINI_BASE_URL,
        timeout=30,
        max_retries=1,
    )


def with_failover(primary: Runnable, fallbacks: List[Runnable]) -> Runnable:
    """Try ``primary`` then each fallback in order on any exception."""
    if not fallbacks:
        return primary
    return primary.with_fallbacks(fallbacks)


def build_intent_llm(settings: Settings) -> Runnable:
    """Chat model in JSON mode for intent classification."""
    primary: Runnable = _openai(settings, settings.OPENAI_MODEL).bind(response_format=JSON_MODE)
    fallbacks: List[Runnable] = []
    if settings.GEMINI_API_KEY:
        fallbacks.append(_gemini(settings).bind(response_format=JSON_MODE))
    return with_failover(primary, fallbacks)


def build_text_llm(settings: Settings) -> Runnable:
    """Chat model for free-text answers."""
    primary: BaseChatModel = _openai(settings, settings.OPENAI_TEXT_MODEL)
    fallbacks: List[Runnable] = [_gemini(settings)] if settings.GEMINI_API_KEY else []
    return with_failover(primary, fallbacks)
