"""
安全事件与共享密钥工具
- 判题回调共享密钥的统一读取与加固提醒
- 常量时间比较，避免时序侧信道泄露密钥
- 统一记录回调认证失败 / 未知 token 等安全事件，便于审计
"""

from __future__ import annotations

import hmac
from typing import Any, Optional

from django.conf import settings
from django.http import HttpRequest

from apps.common.infra.logger import get_security_logger, logger_extra

security_logger = get_security_logger()
_callback_secret_warned = False

#: 判题机回调携带共享密钥的请求头
CALLBACK_SECRET_HEADER = "X-Judge0-Secret"


def get_judge_callback_secret() -> str:
    """
    获取判题回调共享密钥（settings.JUDGE0_CALLBACK_SECRET）
    - 未配置时返回空串，调用方应拒绝所有回调
    - 若长度不足 16 会记录一次警告，提示管理员更换高熵密钥
    """
    global _callback_secret_warned

    resolved = str(getattr(settings, "JUDGE0_CALLBACK_SECRET", "") or "")
    if resolved and len(resolved) < 16 and not _callback_secret_warned:
        security_logger.warning(
            "JUDGE0_CALLBACK_SECRET 长度不足 16，建议更新为高熵随机值（32+ 字符）以防止回调被伪造"
        )
        _callback_secret_warned = True
    return resolved


def secrets_match(provided: Optional[str], expected: str) -> bool:
    """常量时间比较共享密钥；任一为空都视为不匹配"""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def client_ip(request: HttpRequest) -> str:
    """优先取 X-Forwarded-For 的第一个地址"""
    xff = request.META.get("HTTP_X_FORWARDED_FOR")
    if xff:
        return xff.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "")


def log_security_event(
    *,
    action: str,
    request: Optional[HttpRequest] = None,
    detail: Optional[str] = None,
    extra_fields: Optional[dict[str, Any]] = None,
) -> None:
    """
    记录安全事件日志
    - action: 事件类型（callback_auth_failed / callback_unknown_token 等）
    - request: 当前请求对象，用于提取 IP、path、request_id
    - detail: 补充信息
    - extra_fields: 额外字段（如 token 前缀）
    """
    extra: dict[str, Any] = {"action": action}
    if request is not None:
        extra.update({
            "ip": client_ip(request),
            "path": request.path,
            "request_id": getattr(request, "request_id", None),
        })
    if detail:
        extra["detail"] = detail
    if extra_fields:
        extra.update(extra_fields)
    security_logger.warning("安全事件", extra=logger_extra(extra))
