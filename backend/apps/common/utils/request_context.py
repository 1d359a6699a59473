"""
请求上下文：在一次 HTTP 请求或一次 Celery 任务内保存 request_id、用户、路径、IP，供日志格式化器读取

判题回调没有登录用户，日志靠 request_id 与 token 前缀串联；
排行榜刷新任务没有请求，request_id 取任务名加随机串
"""

from __future__ import annotations

import contextvars
import uuid
from typing import Any, Optional

_EMPTY: dict[str, Any] = {
    "request_id": "",
    "user_id": None,
    "username": "",
    "path": "",
    "method": "",
    "ip": "",
}

_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar("request_context", default=_EMPTY)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


def set_request_context(
    *,
    request_id: Optional[str] = None,
    user_id: Optional[int] = None,
    username: str = "",
    path: str = "",
    method: str = "",
    ip: str = "",
) -> None:
    _context.set({
        "request_id": request_id or generate_request_id(),
        "user_id": user_id,
        "username": username or "",
        "path": path or "",
        "method": method or "",
        "ip": ip or "",
    })


def clear_request_context() -> None:
    _context.set(_EMPTY)


def get_request_context() -> dict[str, Any]:
    return dict(_context.get())


def update_request_user(user) -> None:
    """
    DRF 认证完成后补写用户信息（中间件执行时 request.user 可能还是匿名用户）
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return
    current = get_request_context()
    current.update(user_id=getattr(user, "id", None), username=getattr(user, "username", "") or "")
    _context.set(current)


def bind_task_context(task_name: str) -> None:
    """Celery 任务入口调用"""
    set_request_context(request_id=f"{task_name}-{generate_request_id()}", path=f"task:{task_name}")
