"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import LocaleMiddleware, LoggingMiddleware, RequestIDMiddleware
from api.routes import checkout as checkout_routes
from core.config import settings
from core.exceptions import register_exception_handlers
from core.i18n import t
from core.logging_config import configure_logging, get_logger
from core.response import success_response
from core.settings import checkout_settings
from infrastructure.checkout.wiring import build_checkout_components
from infrastructure.external.cache import init_redis_client, shutdown_redis_client
from infrastructure.realtime.brokers import InMemoryRealtimeBroker, RedisRealtimeBroker


# 初始化日志：在入口处显式配置
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    redis = None
    if settings.redis.url:
        try:
            redis = await init_redis_client()
        except Exception as exc:
            # Redis 只承载草稿与跨进程广播，不可用时降级为内存实现
            logger.error("redis_init_failed", error=str(exc))

    # 选择 Broker：redis 需要可用的 Redis 连接，否则回退到内存版
    if settings.REALTIME_BROKER.lower() == "redis" and redis is not None:
        broker = RedisRealtimeBroker(redis)
    else:
        broker = InMemoryRealtimeBroker()
    logger.info("realtime_broker_selected", provider=type(broker).__name__)
    app.state.realtime_broker = broker
    app.state.redis = redis

    # 测试可预先注入 checkout_registry / notification_dispatcher
    components = None
    if getattr(app.state, "checkout_registry", None) is None:
        components = build_checkout_components(checkout_settings, broker=broker, redis=redis)
        app.state.checkout_registry = components.registry
        app.state.notification_dispatcher = components.dispatcher
    logger.info("application_started", environment=settings.ENVIRONMENT)

    yield

    if components is not None:
        await components.aclose()
    else:
        await app.state.checkout_registry.aclose()
    await broker.aclose()
    if redis is not None:
        await shutdown_redis_client()
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        description="Checkout and payment lifecycle for the pressing marketplace",
    )

    # 添加中间件（注意顺序：后添加的先执行）
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(LocaleMiddleware)
    # Request ID 最外层，为后续中间件提供 request_id
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(checkout_routes.router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        return success_response(
            data={"name": settings.PROJECT_NAME, "version": settings.VERSION, "docs": "/docs"},
            message=t("welcome", default="Welcome"),
        )

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        data = {"status": "healthy"}
        redis = getattr(request.app.state, "redis", None)
        if redis is not None:
            data["redis"] = "ok" if await redis.health_check() else "unavailable"
        return success_response(data=data, message=t("health.ok", default="OK"))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
