"""
Checkout settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings; variables are prefixed `CHECKOUT__`,
e.g. `CHECKOUT__PROVIDER__BASE_URL`, `CHECKOUT__VERIFICATION__DEADLINE_SECONDS`.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class HttpTimeouts(BaseModel):
    connect: float = 1.0
    read: float = 3.0
    write: float = 3.0
    total: float = 5.0


class HttpRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class ProviderSettings(BaseModel):
    name: str = "mobile_money"
    base_url: str = "http://localhost:5001/api/"
    api_key: Optional[str] = None
    timeouts: HttpTimeouts = Field(default_factory=HttpTimeouts)
    retry: HttpRetry = Field(default_factory=HttpRetry)


class OrderApiSettings(BaseModel):
    base_url: str = "http://localhost:5001/api/"
    api_key: Optional[str] = None
    timeouts: HttpTimeouts = Field(default_factory=lambda: HttpTimeouts(read=10.0, total=15.0))
    retry: HttpRetry = Field(default_factory=HttpRetry)


class NotificationSettings(BaseModel):
    base_url: str = "http://localhost:5001/api/"
    api_key: Optional[str] = None
    channels: list[str] = Field(default_factory=lambda: ["toast", "websocket", "email", "sms"])
    channel_timeout_seconds: Optional[float] = 10.0
    timeouts: HttpTimeouts = Field(default_factory=HttpTimeouts)


class VerificationSettings(BaseModel):
    deadline_seconds: float = 300.0
    pending_interval_seconds: float = 2.0
    success_interval_seconds: float = 3.0
    failed_interval_seconds: float = 5.0


class CheckoutSettings(BaseSettings):
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    orders: OrderApiSettings = Field(default_factory=OrderApiSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)

    max_retries: int = Field(default=3, ge=0)
    currency: str = "XOF"
    # memory | redis
    draft_store: str = "memory"
    draft_ttl_seconds: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CHECKOUT__",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


checkout_settings = CheckoutSettings()
