"""
统一 API 响应封装（common.response）

目标与作用：
- 提交、回调、排行榜等接口返回结构保持一致
- 业务代码只关注 code/message/data/extra，不直接操作 DRF Response
- 与 BizError 体系对齐，异常处理器与正常返回共用同一字段语义

约定返回结构：
{
    "code": 0,            # 0 表示成功；非 0 表示业务错误
    "message": "OK",      # 提示信息（给人看的）
    "data": {...},        # 业务数据（任意结构；列表、字典、None 均可）
    "extra": {...}        # 可选，附加元信息（分页信息等）
}
"""

from typing import Any, Mapping, Optional

from django.core.paginator import Page
from rest_framework import status
from rest_framework.response import Response

from .exceptions import BizError

SUCCESS_CODE = 0  # 约定：成功永远是 0

Payload = dict[str, Any]


def build_payload(
        *,
        code: int = SUCCESS_CODE,
        message: str = "OK",
        data: Any = None,
        extra: Optional[Mapping[str, Any]] = None,
) -> Payload:
    """构造统一的响应字典，不涉及 HTTP/DRF"""
    payload: Payload = {
        "code": code,
        "message": message,
        "data": data,
    }
    if extra:
        payload["extra"] = dict(extra)
    return payload


def payload_from_biz_error(exc: BizError, data: Any = None) -> Payload:
    """异常处理器将 BizError 转换为对外 payload"""
    return build_payload(code=exc.code, message=exc.message, data=data, extra=exc.extra)


def api_response(
        *,
        code: int = SUCCESS_CODE,
        message: str = "OK",
        data: Any = None,
        http_status: int = status.HTTP_200_OK,
        extra: Optional[Mapping[str, Any]] = None,
) -> Response:
    """所有接口/异常的最终出口，确保格式一致"""
    payload = build_payload(code=code, message=message, data=data, extra=extra)
    return Response(payload, status=http_status)


def success(data: Any = None, message: str = "OK", *, extra: Optional[Mapping[str, Any]] = None) -> Response:
    """业务成功返回（HTTP 200，code 0）"""
    return api_response(data=data, message=message, extra=extra)


def accepted(data: Any = None, message: str = "Accepted") -> Response:
    """
    已受理但结果异步产生（HTTP 202）
    - 提交派发成功后判题结果尚未返回
    """
    return api_response(data=data, message=message, http_status=status.HTTP_202_ACCEPTED)


def page_success(items: Any, page: Page, message: str = "OK") -> Response:
    """
    分页成功返回：data 为当前页列表，分页信息放在 extra

    {"code": 0, "message": "OK", "data": [...],
     "extra": {"page": 1, "page_size": 20, "total": 120, "has_next": true, "has_previous": false}}
    """
    extra = {
        "page": page.number,
        "page_size": page.paginator.per_page,
        "total": page.paginator.count,
        "has_next": page.has_next(),
        "has_previous": page.has_previous(),
    }
    return api_response(message=message, data=items, extra=extra)
