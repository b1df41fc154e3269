"""
Factory for payment provider clients.
"""
from __future__ import annotations

from typing import Optional

from application.ports.payment_provider import PaymentProvider
from core.settings import ProviderSettings, checkout_settings


def get_payment_provider(cfg: Optional[ProviderSettings] = None) -> PaymentProvider:
    cfg = cfg or checkout_settings.provider
    name = cfg.name.lower()
    if name in {"mobile_money", "momo"}:
        from .mobile_money_client import MobileMoneyClient
        return MobileMoneyClient.from_settings(cfg)
    raise ValueError(f"Unsupported payment provider: {name}")
