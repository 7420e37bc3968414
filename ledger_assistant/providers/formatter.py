"""
Request Formatter

Turns a provider-agnostic conversation into a provider-specific
HTTP request (url, headers, body).

RULES:
1. Chat-style providers get the system prompt as a leading system message
2. Providers without a system role get ONE user turn:
   system prompt + blank line + latest user text
3. Streaming is requested only if the provider supports it;
   otherwise the call silently becomes non-streaming
4. Exactly one auth scheme per request
5. Same inputs, same bytes (no timestamps, no random ids)
"""

from urllib.parse import urlencode

from ledger_assistant.errors import InvalidConfig
from ledger_assistant.models.gateway import (
    AuthScheme,
    Conversation,
    GatewayConfig,
    ImageAttachment,
    Message,
    ProviderProfile,
    ProviderRequest,
    Role,
)


DEFAULT_MAX_TOKENS = 1024


def _check_config(profile: ProviderProfile, config: GatewayConfig) -> None:
    if not config.api_key:
        raise InvalidConfig(f"No API key configured for {profile.display_name}")
    if config.model not in profile.selectable_models:
        raise InvalidConfig(
            f"Model {config.model!r} is not available for {profile.display_name}. "
            f"Choose one of: {', '.join(profile.selectable_models)}"
        )


def _render_endpoint(template: str, profile: ProviderProfile, config: GatewayConfig) -> str:
    if "{base_url}" in template and not config.base_url:
        raise InvalidConfig(f"{profile.display_name} needs a base URL (resource endpoint)")
    return template.format(
        model=config.model,
        base_url=(config.base_url or "").rstrip("/"),
    )


def _authorize(
    profile: ProviderProfile,
    config: GatewayConfig,
    url: str,
) -> tuple[str, dict[str, str]]:
    headers = {"Content-Type": "application/json"}
    headers.update(profile.extra_headers)

    if profile.auth_scheme == AuthScheme.BEARER_HEADER:
        headers[profile.auth_param] = f"Bearer {config.api_key}"
    elif profile.auth_scheme == AuthScheme.API_KEY_HEADER:
        headers[profile.auth_param] = config.api_key
    elif profile.auth_scheme == AuthScheme.QUERY_PARAM:
        separator = "&" if "?" in url else "?"
        url = f"{url}{separator}{urlencode({profile.auth_param: config.api_key})}"

    return url, headers


def _prepare_messages(
    profile: ProviderProfile,
    conversation: Conversation,
    latest: Message,
    system_prompt: str,
) -> list[Message]:
    if profile.supports_system_role:
        messages = list(conversation.messages)
        if system_prompt:
            messages.insert(0, Message(role=Role.SYSTEM, content=system_prompt))
        return messages

    text = f"{system_prompt}\n\n{latest.content}" if system_prompt else latest.content
    return [Message(role=Role.USER, content=text, images=latest.images)]


def format_request(
    profile: ProviderProfile,
    config: GatewayConfig,
    conversation: Conversation,
    system_prompt: str,
    want_streaming: bool,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> ProviderRequest:
    """
    Build the provider request for one chat call.

    Raises:
        InvalidConfig: Empty credential, unselectable model, missing
                       base URL, or images for a provider without vision
        ValueError: If the conversation has no user message
    """
    _check_config(profile, config)
    if conversation.has_images and not profile.supports_vision:
        raise InvalidConfig(f"{profile.display_name} cannot read images")
    latest = conversation.latest_user_message()

    messages = _prepare_messages(profile, conversation, latest, system_prompt)
    stream = profile.supports_streaming and want_streaming
    body = profile.build_body(profile, config.model, messages, max_tokens, stream)
    url, headers = _authorize(
        profile, config, _render_endpoint(profile.endpoint, profile, config)
    )
    if stream:
        headers["Accept"] = "text/event-stream"

    return ProviderRequest(url=url, headers=headers, body=body, stream=stream)


def format_vision_request(
    profile: ProviderProfile,
    config: GatewayConfig,
    image: ImageAttachment,
    prompt: str,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> ProviderRequest:
    """
    Build a single-turn image recognition request.

    Image and instruction travel in one user turn; never streaming.
    """
    _check_config(profile, config)
    if not profile.supports_vision:
        raise InvalidConfig(f"{profile.display_name} cannot read images")

    messages = [Message(role=Role.USER, content=prompt, images=[image])]
    body = profile.build_body(profile, config.model, messages, max_tokens, False)
    template = profile.vision_endpoint or profile.endpoint
    url, headers = _authorize(
        profile, config, _render_endpoint(template, profile, config)
    )
    return ProviderRequest(url=url, headers=headers, body=body, stream=False)
