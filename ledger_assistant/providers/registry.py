"""
Provider Profile Registry

Static table of every supported AI provider.
Pure lookup, no side effects.

To add a provider: add ONE entry to _PROFILES.
"""

from ledger_assistant.errors import UnknownProvider
from ledger_assistant.models.gateway import AuthScheme, ProviderProfile
from ledger_assistant.providers.mappings import (
    build_anthropic_body,
    build_google_body,
    build_openai_body,
    extract_anthropic_delta,
    extract_anthropic_text,
    extract_google_delta,
    extract_google_text,
    extract_openai_delta,
    extract_openai_text,
)


_OPENAI_FAMILY = dict(
    build_body=build_openai_body,
    extract_text=extract_openai_text,
    extract_delta=extract_openai_delta,
)


_PROFILES: dict[str, ProviderProfile] = {
    p.provider_id: p
    for p in (
        ProviderProfile(
            provider_id="deepseek",
            display_name="DeepSeek",
            endpoint="https://api.deepseek.com/v1/chat/completions",
            auth_scheme=AuthScheme.BEARER_HEADER,
            supports_streaming=True,
            supports_vision=False,
            default_model="deepseek-chat",
            selectable_models=("deepseek-chat", "deepseek-reasoner"),
            **_OPENAI_FAMILY,
        ),
        ProviderProfile(
            provider_id="moonshot",
            display_name="Moonshot",
            endpoint="https://api.moonshot.cn/v1/chat/completions",
            auth_scheme=AuthScheme.BEARER_HEADER,
            supports_streaming=True,
            supports_vision=False,
            default_model="moonshot-v1-8k",
            selectable_models=("moonshot-v1-8k", "moonshot-v1-32k", "moonshot-v1-128k"),
            **_OPENAI_FAMILY,
        ),
        ProviderProfile(
            provider_id="openai",
            display_name="OpenAI",
            endpoint="https://api.openai.com/v1/chat/completions",
            auth_scheme=AuthScheme.BEARER_HEADER,
            supports_streaming=True,
            supports_vision=True,
            default_model="gpt-4o-mini",
            selectable_models=("gpt-4o-mini", "gpt-4o", "gpt-4-turbo", "gpt-3.5-turbo"),
            **_OPENAI_FAMILY,
        ),
        ProviderProfile(
            provider_id="azure",
            display_name="Azure OpenAI",
            endpoint=(
                "{base_url}/openai/deployments/{model}/chat/completions"
                "?api-version=2023-05-15"
            ),
            auth_scheme=AuthScheme.API_KEY_HEADER,
            auth_param="api-key",
            supports_streaming=True,
            supports_vision=True,
            default_model="gpt-4o-mini",
            selectable_models=("gpt-4o-mini", "gpt-4o", "gpt-35-turbo"),
            **_OPENAI_FAMILY,
        ),
        ProviderProfile(
            provider_id="anthropic",
            display_name="Anthropic",
            endpoint="https://api.anthropic.com/v1/messages",
            auth_scheme=AuthScheme.API_KEY_HEADER,
            auth_param="x-api-key",
            extra_headers={"anthropic-version": "2023-06-01"},
            supports_streaming=True,
            supports_vision=True,
            supports_system_role=False,
            default_model="claude-3-5-haiku-latest",
            selectable_models=(
                "claude-3-5-haiku-latest",
                "claude-3-5-sonnet-latest",
                "claude-3-opus-latest",
            ),
            build_body=build_anthropic_body,
            extract_text=extract_anthropic_text,
            extract_delta=extract_anthropic_delta,
        ),
        ProviderProfile(
            provider_id="google",
            display_name="Google Gemini",
            endpoint=(
                "https://generativelanguage.googleapis.com/v1beta/models/"
                "{model}:generateContent"
            ),
            auth_scheme=AuthScheme.QUERY_PARAM,
            auth_param="key",
            supports_streaming=False,
            supports_vision=True,
            supports_system_role=False,
            default_model="gemini-1.5-flash",
            selectable_models=("gemini-1.5-flash", "gemini-1.5-pro", "gemini-2.0-flash"),
            build_body=build_google_body,
            extract_text=extract_google_text,
            extract_delta=extract_google_delta,
        ),
        ProviderProfile(
            provider_id="zhipu",
            display_name="Zhipu AI",
            endpoint="https://open.bigmodel.cn/api/paas/v4/chat/completions",
            auth_scheme=AuthScheme.BEARER_HEADER,
            supports_streaming=True,
            supports_vision=True,
            image_data_uri=False,
            default_model="glm-4v",
            selectable_models=("glm-4v", "glm-4v-plus", "glm-4v-flash", "glm-4", "glm-4-flash"),
            **_OPENAI_FAMILY,
        ),
    )
}


def profile(provider_id: str) -> ProviderProfile:
    """
    Look up a provider profile.

    Raises:
        UnknownProvider: If the identifier is not registered
    """
    try:
        return _PROFILES[provider_id]
    except KeyError:
        raise UnknownProvider(provider_id) from None


def list_profiles() -> list[ProviderProfile]:
    """All registered profiles, in registration order."""
    return list(_PROFILES.values())
