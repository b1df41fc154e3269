"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    TIMEOUT = 60003
    RATE_LIMITED = 60004

    # Order API errors (7xxxx)
    ORDER_CREATION_FAILED = 70000


# Provider→internal status mapping. Internal vocabulary is
# pending | succeeded | failed | canceled.
PROVIDER_STATUS_TO_INTERNAL = {
    "mobile_money": {
        "initiated": "pending",
        "processing": "pending",
        "pending": "pending",
        "completed": "succeeded",
        "success": "succeeded",
        "succeeded": "succeeded",
        "failed": "failed",
        "rejected": "failed",
        "expired": "failed",
        "cancelled": "canceled",
        "canceled": "canceled",
    },
}

INTERNAL_STATUSES = frozenset({"pending", "succeeded", "failed", "canceled"})
