"""
Unified AI client for lesson generation.

Providers (selected by LESSON_LLM_PROVIDER):
  openai     OpenAI chat completions (default, gpt-4o)
  anthropic  Anthropic messages API

Both SDKs raise typed status errors; they are converted into ModelAPIError
carrying the raw response body so it can be stored as the failure reason.
"""

import logging

import anthropic
import openai

from app.config import settings
from app.lesson_engine.errors import ModelAPIError

logger = logging.getLogger(__name__)


def _provider() -> str:
    return settings.LESSON_LLM_PROVIDER.strip().lower() or "openai"


def _raw_body(exc: Exception) -> str:
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            return response.text
        except Exception:  # response body already consumed / not text
            pass
    return str(exc)


# ─────────────────────────────────────────────────────────────────────────────
# OpenAI
# ─────────────────────────────────────────────────────────────────────────────

async def _openai_chat(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
) -> str:
    client = openai.AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
    try:
        response = await client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[{"role": "system", "content": system}, *messages],
            temperature=temperature,
            max_tokens=max_tokens,
            n=1,
        )
    except openai.APIStatusError as e:
        raise ModelAPIError(_raw_body(e), status_code=e.status_code) from e
    except openai.APIConnectionError as e:
        raise ModelAPIError(f"Connection failed: {e}") from e

    if not response.choices:
        raise ModelAPIError("Response contained no choices")
    return response.choices[0].message.content or ""


# ─────────────────────────────────────────────────────────────────────────────
# Anthropic
# ─────────────────────────────────────────────────────────────────────────────

async def _anthropic_chat(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
) -> str:
    client = anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
    try:
        response = await client.messages.create(
            model=settings.ANTHROPIC_MODEL,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=messages,
        )
    except anthropic.APIStatusError as e:
        raise ModelAPIError(_raw_body(e), status_code=e.status_code) from e
    except anthropic.APIConnectionError as e:
        raise ModelAPIError(f"Connection failed: {e}") from e

    return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")


# ─────────────────────────────────────────────────────────────────────────────
# Status helpers
# ─────────────────────────────────────────────────────────────────────────────

def ai_provider_name() -> str:
    provider = _provider()
    if provider == "anthropic":
        return f"Anthropic ({settings.ANTHROPIC_MODEL})" if settings.ANTHROPIC_API_KEY else "none"
    return f"OpenAI ({settings.OPENAI_MODEL})" if settings.OPENAI_API_KEY else "none"


async def ai_health_check() -> dict:
    """Live connectivity test — called by /api/health/ai."""
    provider = ai_provider_name()
    if provider == "none":
        return {
            "provider": "none",
            "status": "unconfigured",
            "message": "Set OPENAI_API_KEY (or LESSON_LLM_PROVIDER=anthropic and ANTHROPIC_API_KEY) in backend/.env.",
        }

    try:
        reply = await chat(
            system="You are a test assistant.",
            messages=[{"role": "user", "content": "Reply with exactly: OK"}],
            max_tokens=10,
            temperature=0.0,
        )
        return {"provider": provider, "status": "ok", "test_reply": reply.strip()}
    except ModelAPIError as e:
        return {"provider": provider, "status": "error", "error": str(e)}


# ─────────────────────────────────────────────────────────────────────────────
# Public chat() — the single entry point used by the generation service
# ─────────────────────────────────────────────────────────────────────────────

async def chat(
    system: str,
    messages: list[dict],
    max_tokens: int = 4000,
    temperature: float = 0.7,
) -> str:
    """Send a single-completion chat request to the configured provider.

    Raises:
        ModelAPIError: the provider answered with a non-success status or
            could not be reached.
    """
    if _provider() == "anthropic":
        return await _anthropic_chat(system, messages, max_tokens, temperature)
    return await _openai_chat(system, messages, max_tokens, temperature)
