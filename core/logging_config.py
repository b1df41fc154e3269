"""
Structlog 日志配置模块

结账流程的日志全部是结构化事件（settlement_started、verification_outcome 等），
标准库 logging（uvicorn、httpx）经 ProcessorFormatter 走同一条处理链。
"""
import json
import logging
from typing import Any, List

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import settings


# 脱敏字段：手机号只保留后四位，密钥整体隐藏
PHONE_FIELDS = frozenset({"phone_number", "customer_phone"})
SECRET_FIELDS = frozenset({"api_key"})


def mask_sensitive(_, __, event_dict: dict) -> dict:
    for key in PHONE_FIELDS & event_dict.keys():
        value = event_dict[key]
        if isinstance(value, str) and value:
            event_dict[key] = "***" + value[-4:]
    for key in SECRET_FIELDS & event_dict.keys():
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def add_service(_, __, event_dict: dict) -> dict:
    """每条事件带上服务名和环境，便于多服务日志聚合后筛选。"""
    event_dict.setdefault("service", settings.PROJECT_NAME)
    event_dict.setdefault("env", settings.ENVIRONMENT)
    return event_dict


def _json_dumps(obj, default=None, **kwargs) -> str:
    # structlog 会传入 default/sort_keys 等参数；保留法语等非 ASCII 文本原样输出
    return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)


def get_renderer() -> Any:
    if settings.DEBUG:
        return ConsoleRenderer(colors=True)
    return JSONRenderer(serializer=_json_dumps)


def resolve_level() -> int:
    """LOG_LEVEL 优先；未配置时按 DEBUG 开关取 DEBUG/INFO。"""
    if settings.LOG_LEVEL:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if settings.DEBUG else logging.INFO


def configure_logging() -> None:
    """配置 structlog，并把标准库 logging 桥接到同一处理链。"""
    # 共享预处理链：structlog 事件与 stdlib 记录都要经过
    shared_pre_chain: List[Any] = [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso"),
        add_service,
        mask_sensitive,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared_pre_chain, ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        ProcessorFormatter(
            foreign_pre_chain=shared_pre_chain,
            processors=[ProcessorFormatter.remove_processors_meta, get_renderer()],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolve_level())
    # 支付/订单 HTTP 调用由适配器自行记录，客户端库的逐请求 INFO 压到 WARNING
    for name in settings.LOG_QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


configure_logging()
