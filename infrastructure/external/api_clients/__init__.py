"""
API客户端模块

提供与外部REST API集成的客户端实现
"""
from .base import BaseAPIClient, APIError, RetryableAPIError

__all__ = [
    "BaseAPIClient",
    "APIError",
    "RetryableAPIError",
]
