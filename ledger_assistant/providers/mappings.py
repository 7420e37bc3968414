"""
Per-provider wire mappings.

Three envelope families cover every registered provider:
- OpenAI-compatible chat completions (DeepSeek, Moonshot, OpenAI, Azure, Zhipu)
- Anthropic messages
- Google generateContent

Each family has a body builder, a final-text extractor and a
stream-delta extractor. They are pure functions; the registry
wires them into ProviderProfiles.
"""

from typing import Any, Optional

from ledger_assistant.models.gateway import Message, ProviderProfile, Role


def _text_of(parts: Any) -> str:
    """Join the text of a content-part list (or return a plain string)."""
    if isinstance(parts, str):
        return parts
    if not isinstance(parts, list):
        raise TypeError(f"Unexpected content shape: {type(parts).__name__}")
    texts = []
    for part in parts:
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            texts.append(part["text"])
        elif isinstance(part, str):
            texts.append(part)
    return "".join(texts)


# =============================================================================
# OPENAI-COMPATIBLE
# =============================================================================

def _openai_content(profile: ProviderProfile, message: Message) -> Any:
    if not message.images:
        return message.content
    parts: list[dict] = []
    for image in message.images:
        url = image.data_uri if profile.image_data_uri else image.data
        parts.append({"type": "image_url", "image_url": {"url": url}})
    parts.append({"type": "text", "text": message.content})
    return parts


def build_openai_body(
    profile: ProviderProfile,
    model: str,
    messages: list[Message],
    max_tokens: int,
    stream: bool,
) -> dict:
    return {
        "model": model,
        "messages": [
            {"role": m.role.value, "content": _openai_content(profile, m)}
            for m in messages
        ],
        "max_tokens": max_tokens,
        "stream": stream,
    }


def extract_openai_text(envelope: dict) -> str:
    message = envelope["choices"][0]["message"]
    content = message.get("content")
    return "" if content is None else _text_of(content)


def extract_openai_delta(frame: dict) -> Optional[str]:
    choices = frame.get("choices")
    if not choices or not isinstance(choices, list):
        return None
    delta = (choices[0] or {}).get("delta") or {}
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


# =============================================================================
# ANTHROPIC
# =============================================================================

def _anthropic_content(message: Message) -> Any:
    if not message.images:
        return message.content
    parts: list[dict] = [
        {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": image.mime_type,
                "data": image.data,
            },
        }
        for image in message.images
    ]
    parts.append({"type": "text", "text": message.content})
    return parts


def build_anthropic_body(
    profile: ProviderProfile,
    model: str,
    messages: list[Message],
    max_tokens: int,
    stream: bool,
) -> dict:
    return {
        "model": model,
        "messages": [
            {"role": m.role.value, "content": _anthropic_content(m)}
            for m in messages
            if m.role != Role.SYSTEM
        ],
        "max_tokens": max_tokens,
        "stream": stream,
    }


def extract_anthropic_text(envelope: dict) -> str:
    blocks = envelope["content"]
    if not blocks:
        return ""
    return _text_of([b for b in blocks if b.get("type", "text") == "text"])


def extract_anthropic_delta(frame: dict) -> Optional[str]:
    delta = frame.get("delta")
    if not isinstance(delta, dict):
        return None
    text = delta.get("text")
    if isinstance(text, str) and text:
        return text
    return None


# =============================================================================
# GOOGLE
# =============================================================================

def _google_parts(message: Message) -> list[dict]:
    parts: list[dict] = [
        {"inline_data": {"mime_type": image.mime_type, "data": image.data}}
        for image in message.images
    ]
    parts.append({"text": message.content})
    return parts


def build_google_body(
    profile: ProviderProfile,
    model: str,
    messages: list[Message],
    max_tokens: int,
    stream: bool,
) -> dict:
    # No stream flag: the endpoint itself decides (generateContent never streams)
    return {
        "contents": [
            {
                "role": "model" if m.role == Role.ASSISTANT else "user",
                "parts": _google_parts(m),
            }
            for m in messages
            if m.role != Role.SYSTEM
        ],
        "generationConfig": {"maxOutputTokens": max_tokens},
    }


def extract_google_text(envelope: dict) -> str:
    return _text_of(envelope["candidates"][0]["content"]["parts"])


def extract_google_delta(frame: dict) -> Optional[str]:
    try:
        text = extract_google_text(frame)
    except (KeyError, IndexError, TypeError):
        return None
    return text or None
