import logging

from core.config import settings
from core.exceptions import business_code_to_http_status
from core.i18n import get_locale, set_locale, t
from core.logging_config import mask_sensitive, resolve_level
from core.settings import CheckoutSettings
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


def test_business_codes_map_to_http_status():
    assert business_code_to_http_status(BusinessCode.CHECKOUT_NOT_FOUND) == 404
    assert business_code_to_http_status(BusinessCode.SETTLEMENT_IN_PROGRESS) == 409
    assert business_code_to_http_status(BusinessCode.PARAM_VALIDATION_ERROR) == 422
    assert business_code_to_http_status(PaymentCode.TIMEOUT) == 504
    assert business_code_to_http_status(99999) == 400


def test_mask_sensitive_keeps_last_digits():
    event = mask_sensitive(None, None, {"event": "x", "phone_number": "0712345678", "api_key": "secret"})
    assert event["phone_number"] == "***5678"
    assert event["api_key"] == "***"


def test_mask_sensitive_ignores_empty_values():
    event = mask_sensitive(None, None, {"event": "x", "customer_phone": "", "api_key": None})
    assert event["customer_phone"] == ""
    assert event["api_key"] is None


def test_log_level_resolution(monkeypatch):
    monkeypatch.setattr(settings, "LOG_LEVEL", "warning")
    assert resolve_level() == logging.WARNING
    monkeypatch.setattr(settings, "LOG_LEVEL", "")
    monkeypatch.setattr(settings, "DEBUG", False)
    assert resolve_level() == logging.INFO
    monkeypatch.setattr(settings, "LOG_LEVEL", "nonsense")
    assert resolve_level() == logging.INFO


def test_translation_falls_back_to_default():
    set_locale("fr")
    try:
        assert get_locale() == "fr"
        assert t("checkout.retry.limit_reached", default="Limit {max_retries}", max_retries=3) == "Limit 3"
        assert t("unknown.key") == "unknown.key"
    finally:
        set_locale("en")


def test_checkout_settings_from_env(monkeypatch):
    monkeypatch.setenv("CHECKOUT__MAX_RETRIES", "5")
    monkeypatch.setenv("CHECKOUT__PROVIDER__BASE_URL", "https://pay.example/api/")
    monkeypatch.setenv("CHECKOUT__VERIFICATION__DEADLINE_SECONDS", "120")
    cfg = CheckoutSettings(_env_file=None)
    assert cfg.max_retries == 5
    assert cfg.provider.base_url == "https://pay.example/api/"
    assert cfg.verification.deadline_seconds == 120
    assert cfg.verification.pending_interval_seconds == 2.0
    assert cfg.draft_ttl_seconds == 3600
