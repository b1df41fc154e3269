"""
REST API客户端基类

Shared by the Order API client and the email/SMS notification channels:
- httpx.AsyncClient with explicit timeouts
- tenacity retry on timeouts/transport errors and transient 5xx/429
- `{success, data}` envelope unwrapping
- structured request/response logging
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.logging_config import get_logger


logger = get_logger(__name__)

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class APIError(Exception):
    """API错误基类"""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)

    def __str__(self):
        if self.status_code:
            return f"{self.message} | Status: {self.status_code}"
        return self.message


class RetryableAPIError(APIError):
    """可重试的API错误（5xx/429）"""


class BaseAPIClient:
    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        Args:
            base_url: API基础URL
            api_key: 作为 Bearer token 发送
            timeouts: connect/read/write/total 秒数
            retry: {"max": 重试次数, "base": 退避基数}
            transport: 测试时注入 httpx.MockTransport
        """
        self.base_url = base_url.rstrip("/") + "/"
        self._timeouts_cfg = timeouts or {"connect": 1.0, "read": 3.0, "write": 3.0, "total": 5.0}
        self._retry_cfg = retry or {"max": 2, "base": 0.2}
        self._transport = transport
        self.default_headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if api_key:
            self.default_headers["Authorization"] = f"Bearer {api_key}"
        if headers:
            self.default_headers.update(headers)
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            self._timeouts_cfg["total"],
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """获取或创建HTTP客户端"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeouts,
                headers=self.default_headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """关闭HTTP客户端"""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _retrying(self, retry_on: tuple) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(int(self._retry_cfg["max"]) + 1),
            wait=wait_exponential(multiplier=self._retry_cfg["base"], min=0.1, max=2.0),
            retry=retry_if_exception_type(retry_on),
            reraise=True,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        retry_on: tuple = (httpx.TimeoutException, httpx.TransportError, RetryableAPIError),
    ) -> Any:
        """Send a request and return the unwrapped `data` of the response envelope.

        Raises APIError for non-2xx responses and `{success: false}` bodies;
        httpx timeouts/transport errors propagate once retries are exhausted.
        """
        async for attempt in self._retrying(retry_on):
            with attempt:
                return await self._send_once(method, path, json=json, params=params)

    async def _send_once(self, method: str, path: str, **kwargs) -> Any:
        start = time.perf_counter()
        response = await self.client.request(method, path.lstrip("/"), **kwargs)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        body = self._decode(response)
        logger.debug(
            "api_response",
            method=method,
            path=path,
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
        )
        if response.status_code in RETRY_STATUS_CODES:
            raise RetryableAPIError(self._error_message(body, response.status_code), response.status_code, body)
        if response.is_error:
            raise APIError(self._error_message(body, response.status_code), response.status_code, body)
        if isinstance(body, dict) and "success" in body:
            if not body.get("success"):
                raise APIError(self._error_message(body, response.status_code), response.status_code, body)
            return body.get("data")
        return body

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if "application/json" not in response.headers.get("content-type", ""):
            return response.text or None
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _error_message(body: Any, status_code: int) -> str:
        if isinstance(body, dict):
            for key in ("message", "error", "detail"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
        if isinstance(body, str) and body:
            return body
        return f"API request failed with status {status_code}"
