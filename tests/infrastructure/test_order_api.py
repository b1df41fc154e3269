import json

import httpx
import pytest

from core.settings import OrderApiSettings
from infrastructure.external.orders import HttpOrderApi, OrderCreationError


def _api(handler) -> HttpOrderApi:
    cfg = OrderApiSettings(base_url="https://orders.test/api", retry={"max": 2, "base_backoff": 0.0})
    return HttpOrderApi.from_settings(cfg, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_create_posts_draft_and_reads_id():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"success": True, "data": {"_id": "ord_42", "reference": "GEO-000042"}})

    async with _api(handler) as api:
        created = await api.create({"pressing_id": "p1", "order_reference": "GEO-000042"})

    assert seen["path"] == "/api/orders"
    assert seen["body"]["pressing_id"] == "p1"
    assert created.id == "ord_42"
    assert created.reference == "GEO-000042"


@pytest.mark.asyncio
async def test_server_error_is_not_resent():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, json={"success": False, "message": "boom"})

    async with _api(handler) as api:
        with pytest.raises(OrderCreationError) as exc:
            await api.create({"pressing_id": "p1"})

    assert len(calls) == 1
    assert exc.value.status_code == 500
    assert exc.value.message == "boom"


@pytest.mark.asyncio
async def test_validation_error_from_api():
    def handler(request):
        return httpx.Response(400, json={"success": False, "message": "services required"})

    async with _api(handler) as api:
        with pytest.raises(OrderCreationError) as exc:
            await api.create({})

    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_missing_id_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"success": True, "data": {"reference": "x"}})

    async with _api(handler) as api:
        with pytest.raises(OrderCreationError):
            await api.create({})


@pytest.mark.asyncio
async def test_timeout_is_an_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    async with _api(handler) as api:
        with pytest.raises(OrderCreationError) as exc:
            await api.create({})

    assert "timed out" in exc.value.message
