"""
日志封装：提供统一的日志记录器

- 输出到 settings.LOG_PATH 下的 system.log
- 支持 JSON 和 PLAIN 两种格式（settings.LOG_FORMAT）
- 自动轮转日志文件（按日期）
- 自动注入请求上下文（request_id、user_id、username、ip、path 等）
- 判题回调中的可疑请求（未知 token、密钥错误）写入 apps.security 日志器
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from django.conf import settings as django_settings

_configured = False

#: 安全信号专用日志器名称（重放/伪造回调等）
SECURITY_LOGGER_NAME = "apps.security"


def _context_fields() -> dict:
    # 延迟导入，避免 settings 加载阶段的循环依赖
    from apps.common.utils.request_context import get_request_context

    return get_request_context()


class JudgeJSONFormatter(logging.Formatter):
    """
    JSON 格式化器

    输出示例：
    {"timestamp": "2026-03-01 10:00:00", "level": "INFO", "logger": "apps.submissions.services",
     "message": "判题回调-状态已更新", "request_id": "...", "submission_id": 12}
    """

    #: LogRecord 自带的属性，不作为业务字段输出
    _RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        ctx = _context_fields()
        log_dict = {
            "timestamp": datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("request_id", "user_id", "username", "ip", "path"):
            if ctx.get(key) is not None:
                log_dict[key] = ctx[key]

        # extra=logger_extra({...}) 传入的业务字段
        for key, value in vars(record).items():
            if key not in self._RESERVED and not key.startswith("_"):
                log_dict.setdefault(key, value)

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, ensure_ascii=False, default=str)


class JudgePlainFormatter(logging.Formatter):
    """
    PLAIN 格式化器

    格式：{timestamp} {level} {logger} {message} [{username}|{user_id}|{ip}|{path}]

    输出示例：
    2026-03-01 10:00:00 INFO apps.submissions.services 判题派发-成功 [alice|3|127.0.0.1|/api/submissions/]
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = _context_fields()
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        username = ctx.get("username") or "-"
        user_id = str(ctx.get("user_id")) if ctx.get("user_id") is not None else "-"
        ip_address = ctx.get("ip") or "-"
        request_path = ctx.get("path") or "-"

        log_line = (
            f"{timestamp} {record.levelname} {record.name} {record.getMessage()} "
            f"[{username}|{user_id}|{ip_address}|{request_path}]"
        )
        if record.exc_info:
            log_line += "\n" + self.formatException(record.exc_info)
        return log_line


def get_log_file_path() -> str:
    """基于 settings.LOG_PATH 生成日志文件路径：{LOG_PATH}/system.log"""
    log_dir = Path(getattr(django_settings, "LOG_PATH", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / "system.log")


class SafeTimedRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
    """按日轮转的文件 Handler：文件被占用导致轮转失败时跳过本次轮转"""

    def doRollover(self):
        try:
            super().doRollover()
        except PermissionError:
            pass


def configure_logging(force: bool = False, *, level: Optional[int] = None, log_file_path: Optional[str] = None) -> None:
    """
    配置日志系统

    - PLAIN / JSON 格式由 settings.LOG_FORMAT 决定
    - 每天午夜轮转，保留 30 天历史
    - DEBUG=true 时额外输出到控制台
    """
    global _configured
    if _configured and not force:
        return

    log_level = level if level is not None else getattr(logging, str(getattr(django_settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO)
    log_file_path = log_file_path if log_file_path is not None else get_log_file_path()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()

    if str(getattr(django_settings, "LOG_FORMAT", "plain")).lower() == "json":
        formatter: logging.Formatter = JudgeJSONFormatter()
    else:
        formatter = JudgePlainFormatter()

    file_handler = SafeTimedRotatingFileHandler(
        filename=log_file_path,
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8",
        delay=True,
    )
    file_handler.suffix = "%Y-%m-%d"
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if os.getenv("DEBUG", "False").lower() == "true":
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    获取 logger 实例

    使用方式：
        logger = get_logger(__name__)
        logger.info("判题派发-成功", extra=logger_extra({"submission_id": 1}))
    """
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


def get_security_logger() -> logging.Logger:
    """安全信号日志器：未知 token、回调密钥错误等"""
    return get_logger(SECURITY_LOGGER_NAME)


SENSITIVE_KEYS = {"password", "token", "secret", "code", "source_code", "auth_token", "x-judge0-secret"}


def sanitize_extra(extra: Optional[dict] = None) -> dict:
    """过滤敏感字段，避免在日志中泄露 token/密钥/源代码"""
    if not extra:
        return {}
    return {k: ("***" if k.lower() in SENSITIVE_KEYS else v) for k, v in extra.items()}


def logger_extra(extra: Optional[dict] = None) -> dict:
    """封装 extra，自动过滤敏感字段"""
    return sanitize_extra(extra)


def mask_token(token: Optional[str]) -> str:
    """判题 token 只保留前 8 位，用于日志关联"""
    if not token:
        return "-"
    return f"{token[:8]}…" if len(token) > 8 else token
