"""
Gateway Data Models

These models describe everything that flows through the AI gateway:
provider profiles, runtime configuration, conversations, requests and
streamed fragments.

DESIGN DECISION: A ProviderProfile carries ALL provider-specific knowledge
(endpoint, auth style, request shape, response shape) in one record.
Adding a provider means adding one registry entry, not touching
three unrelated switch statements.
"""

import base64
import binascii
import json
from datetime import date
from enum import Enum
from typing import Any, Callable, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class AuthScheme(str, Enum):
    """How a provider expects the credential to travel."""
    BEARER_HEADER = "bearer-header"
    API_KEY_HEADER = "api-key-header"
    QUERY_PARAM = "query-param"


class Role(str, Enum):
    """Message author role."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# =============================================================================
# PROVIDER PROFILE
# =============================================================================

class ProviderProfile(BaseModel):
    """
    Static description of one AI provider.

    Immutable; defined once in the registry.

    The three callables are the per-provider mappings:
    - build_body(profile, model, messages, max_tokens, stream) -> dict
    - extract_text(envelope) -> str
    - extract_delta(frame) -> Optional[str]
    """
    model_config = ConfigDict(frozen=True)

    provider_id: str = Field(..., min_length=1)
    display_name: str
    endpoint: str = Field(
        ...,
        description="URL template; may contain {model} and {base_url}"
    )
    vision_endpoint: Optional[str] = Field(
        default=None,
        description="Dedicated image endpoint template (defaults to endpoint)"
    )
    auth_scheme: AuthScheme
    auth_param: str = Field(
        default="Authorization",
        description="Header name or query parameter carrying the credential"
    )
    extra_headers: dict[str, str] = Field(default_factory=dict)

    supports_streaming: bool = True
    supports_vision: bool = False
    supports_system_role: bool = True
    image_data_uri: bool = Field(
        default=True,
        description="Send images as data: URIs (False = bare base64)"
    )

    default_model: str
    selectable_models: tuple[str, ...]

    build_body: Callable[..., dict]
    extract_text: Callable[[dict], str]
    extract_delta: Callable[[dict], Optional[str]]

    @model_validator(mode='after')
    def validate_default_model(self) -> 'ProviderProfile':
        """The default model must itself be selectable."""
        if self.default_model not in self.selectable_models:
            raise ValueError(
                f"Default model {self.default_model!r} is not selectable "
                f"for provider {self.provider_id!r}"
            )
        return self


# =============================================================================
# RUNTIME CONFIGURATION
# =============================================================================

class GatewayConfig(BaseModel):
    """
    Runtime configuration of the primary provider.

    Owned by the ConfigStore. Callers must check `is_usable`
    before starting a session.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    provider: str = Field(default="deepseek", min_length=1)
    api_key: str = Field(default="", repr=False)
    model: str = Field(default="deepseek-chat", min_length=1)
    enabled: bool = False
    base_url: Optional[str] = Field(
        default=None,
        description="Base URL for templated endpoints (e.g. Azure resource)"
    )

    @property
    def is_usable(self) -> bool:
        return self.enabled and bool(self.api_key)


class VisionConfig(GatewayConfig):
    """
    Secondary provider used only when the primary cannot read images.
    """

    provider: str = Field(default="zhipu", min_length=1)
    model: str = Field(default="glm-4v", min_length=1)


# =============================================================================
# CONVERSATION
# =============================================================================

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


class ImageAttachment(BaseModel):
    """
    A base64-encoded image attached to a message.

    Accepts either bare base64 or a full data: URI; the prefix is
    stripped and the mime type taken from it.
    """

    data: str = Field(..., min_length=1, repr=False)
    mime_type: str = "image/jpeg"

    @model_validator(mode='before')
    @classmethod
    def split_data_uri(cls, values: Any) -> Any:
        if isinstance(values, dict):
            raw = values.get("data")
            if isinstance(raw, str) and raw.startswith("data:") and "," in raw:
                header, payload = raw.split(",", 1)
                values = dict(values)
                values["data"] = payload
                mime = header[5:].split(";", 1)[0]
                if mime:
                    values["mime_type"] = mime
        return values

    @field_validator('data')
    @classmethod
    def validate_base64(cls, v: str) -> str:
        v = "".join(v.split())
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Image data is not valid base64")
        return v

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image types."""
        if v.lower() not in ALLOWED_IMAGE_TYPES:
            raise ValueError(
                f"Unsupported image type: {v}. Allowed: {sorted(ALLOWED_IMAGE_TYPES)}"
            )
        return v.lower()

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class Message(BaseModel):
    """One turn of a conversation."""

    role: Role
    content: str
    images: list[ImageAttachment] = Field(default_factory=list)


class Conversation(BaseModel):
    """
    Ordered, append-only sequence of messages.

    The gateway keeps no conversation state between calls;
    whatever the caller passes in is the whole context.
    """

    messages: list[Message] = Field(default_factory=list)

    @classmethod
    def from_user_text(
        cls,
        text: str,
        images: Optional[list[ImageAttachment]] = None,
    ) -> 'Conversation':
        conversation = cls()
        conversation.append(Role.USER, text, images)
        return conversation

    def append(
        self,
        role: Role,
        content: str,
        images: Optional[list[ImageAttachment]] = None,
    ) -> Message:
        message = Message(role=role, content=content, images=images or [])
        self.messages.append(message)
        return message

    def latest_user_message(self) -> Message:
        for message in reversed(self.messages):
            if message.role == Role.USER:
                return message
        raise ValueError("Conversation has no user message")

    @property
    def has_images(self) -> bool:
        return any(message.images for message in self.messages)


# =============================================================================
# WIRE-LEVEL RECORDS
# =============================================================================

class ProviderRequest(BaseModel):
    """A fully formatted, provider-specific HTTP request."""

    url: str
    headers: dict[str, str] = Field(repr=False)
    body: dict[str, Any]
    stream: bool = False

    def encoded_body(self) -> bytes:
        """Serialize the body; identical bodies give identical bytes."""
        return json.dumps(
            self.body,
            ensure_ascii=False,
            separators=(",", ":"),
        ).encode("utf-8")

    @property
    def log_url(self) -> str:
        """URL without query string (query-param auth carries the key)."""
        parts = urlsplit(self.url)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class StreamFragment(BaseModel):
    """One incremental delta plus the running text so far."""

    delta: str
    text: str


# =============================================================================
# USAGE
# =============================================================================

def month_key(day: date) -> str:
    """Calendar month key, e.g. '2024-02'."""
    return day.strftime("%Y-%m")


class UsageCounters(BaseModel):
    """
    Call counters.

    Monthly count resets lazily: if `last_month` is not the current
    month, the monthly count is treated as zero.
    """

    monthly: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    last_month: str = Field(default="", description="YYYY-MM of the last recorded call")

    def as_of(self, current_month: str) -> 'UsageCounters':
        """View of the counters in `current_month` (no mutation)."""
        if self.last_month == current_month:
            return self.model_copy()
        return self.model_copy(update={"monthly": 0})

    def recorded(self, current_month: str) -> 'UsageCounters':
        """Counters after one more successful call in `current_month`."""
        base = self.as_of(current_month)
        return UsageCounters(
            monthly=base.monthly + 1,
            total=self.total + 1,
            last_month=current_month,
        )
