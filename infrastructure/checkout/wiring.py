"""
Composition of the checkout components from settings.

Used by the application lifespan; tests assemble the same pieces with stubs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from application.ports.realtime import RealtimeBrokerPort
from application.services.checkout_registry import CheckoutRegistry
from application.services.notification_dispatcher import NotificationDispatcher
from application.services.terminal_screens import TerminalScreenFactory
from core.logging_config import get_logger
from core.settings import CheckoutSettings
from domain.checkout.session import TerminalKind
from infrastructure.checkout.draft_stores import InMemoryDraftStore, RedisDraftStore
from infrastructure.checkout.navigator import RecordingNavigator
from infrastructure.external.cache import RedisClient
from infrastructure.external.notifications import build_channels, notification_api
from infrastructure.external.orders import HttpOrderApi
from infrastructure.external.payments import get_payment_provider


logger = get_logger(__name__)


@dataclass
class CheckoutComponents:
    registry: CheckoutRegistry
    dispatcher: NotificationDispatcher
    closables: list = field(default_factory=list)

    async def aclose(self) -> None:
        await self.registry.aclose()
        for client in self.closables:
            await client.aclose()


def build_checkout_components(
    cfg: CheckoutSettings,
    *,
    broker: Optional[RealtimeBrokerPort] = None,
    redis: Optional[RedisClient] = None,
) -> CheckoutComponents:
    provider = get_payment_provider(cfg.provider)
    orders = HttpOrderApi.from_settings(cfg.orders)
    notifications_api = notification_api(cfg.notifications)
    channels = build_channels(cfg.notifications, broker=broker, api=notifications_api)
    dispatcher = NotificationDispatcher(channels, channel_timeout=cfg.notifications.channel_timeout_seconds)

    if cfg.draft_store == "redis" and redis is not None:
        drafts = RedisDraftStore(redis, ttl_seconds=cfg.draft_ttl_seconds)
    else:
        if cfg.draft_store == "redis":
            logger.warning("checkout_draft_store_fallback", requested="redis", using="memory")
        drafts = InMemoryDraftStore(ttl_seconds=cfg.draft_ttl_seconds)

    v = cfg.verification
    screens = TerminalScreenFactory(
        provider,
        intervals={
            TerminalKind.PENDING: v.pending_interval_seconds,
            TerminalKind.SUCCESS: v.success_interval_seconds,
            TerminalKind.FAILED: v.failed_interval_seconds,
        },
        deadline=v.deadline_seconds,
    )
    registry = CheckoutRegistry(
        provider=provider,
        orders=orders,
        dispatcher=dispatcher,
        navigator_factory=RecordingNavigator,
        drafts=drafts,
        screens=screens,
        max_retries=cfg.max_retries,
        currency=cfg.currency,
        idle_ttl_seconds=cfg.draft_ttl_seconds,
    )
    logger.info(
        "checkout_components_built",
        provider=cfg.provider.name,
        channels=dispatcher.channels,
        draft_store=type(drafts).__name__,
    )
    return CheckoutComponents(registry=registry, dispatcher=dispatcher, closables=[provider, orders, notifications_api])
