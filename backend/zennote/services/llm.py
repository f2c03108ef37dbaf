import html
import logging
import re
from typing import Any

import httpx

from zennote.config import settings

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK = "An error occurred while generating the summary."

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"[ \t]+")


async def chat_completion(
    messages: list[dict[str, Any]],
    *,
    model: str,
    base_url: str | None = None,
    api_key: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """POST to an OpenAI-compatible /chat/completions endpoint and return the message text."""
    base_url = base_url or settings.vllm_base_url
    api_key = api_key if api_key is not None else settings.vllm_api_key
    payload: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens if max_tokens is not None else settings.vllm_max_tokens,
        "temperature": temperature if temperature is not None else settings.vllm_temperature,
    }

    headers: dict[str, str] = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    async with httpx.AsyncClient(timeout=120.0, transport=transport) as client:
        resp = await client.post(
            f"{base_url.rstrip('/')}/chat/completions",
            json=payload,
            headers=headers,
        )
        resp.raise_for_status()
        data = resp.json()
    choices = data.get("choices")
    if not choices:
        raise ValueError("No choices in completion response")
    message = choices[0].get("message") or {}
    return (message.get("content") or "").strip()


def plain_text(content: str) -> str:
    """Visible text of a note's markup, as the editor would show it."""
    text = re.sub(r"<br\s*/?>|</(p|div|li|h[1-6])>", "\n", content, flags=re.IGNORECASE)
    text = html.unescape(_TAG_RE.sub("", text))
    return "\n".join(_SPACE_RE.sub(" ", line).strip() for line in text.splitlines()).strip()


async def summarize_note(text: str, transport: httpx.AsyncBaseTransport | None = None) -> str:
    """Concise paragraph summary; never raises, the fallback text goes into the note instead."""
    messages = [
        {"role": "system", "content": "You are a helpful study assistant. Provide clear, concise summaries."},
        {"role": "user", "content": f"Summarize the following note content into a concise paragraph: {text}"},
    ]
    try:
        summary = await chat_completion(messages, model=settings.vllm_summary_model, transport=transport)
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Summary request failed", extra={"error": str(e)})
        return SUMMARY_FALLBACK
    return summary or "Failed to generate summary."


async def expand_note(text: str, transport: httpx.AsyncBaseTransport | None = None) -> str:
    """More detail, context or examples for `text`; returns `text` itself on failure."""
    messages = [
        {"role": "system", "content": "You are a knowledgeable academic tutor. Help students expand their thoughts."},
        {
            "role": "user",
            "content": f"Expand on the following note and provide more detail, context, or examples: {text}",
        },
    ]
    try:
        expansion = await chat_completion(messages, model=settings.vllm_expand_model, transport=transport)
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Expand request failed", extra={"error": str(e)})
        return text
    return expansion or text


def summary_block(summary: str) -> str:
    return (
        '<br/><br/><div class="ai-summary"><strong>AI Summary:</strong><br/>'
        f"{html.escape(summary)}</div><br/>"
    )


def expansion_block(expansion: str) -> str:
    return (
        '<br/><br/><div class="ai-expansion"><strong>AI Deep Dive:</strong><br/>'
        f"{html.escape(expansion)}</div><br/>"
    )
