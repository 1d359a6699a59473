"""
全局异常处理器（REST_FRAMEWORK.EXCEPTION_HANDLER）

调用方有两类：前端与判题机。判题机只看 HTTP 状态码决定是否重投：
- 4xx：请求本身有问题（密钥错误、载荷不合法、token 未知），重投无意义
- 503：数据库/判题机等依赖暂不可用，可以安全重投
- 500：程序 bug，记录完整堆栈，不向外泄露细节

响应体统一为 {code, message, data, extra}
"""

from __future__ import annotations

from typing import Any, Optional

from django.db import InterfaceError, OperationalError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .exceptions import (
    AuthError,
    BizError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    TransientStoreError,
    ValidationError,
)
from .infra.logger import get_logger, logger_extra
from .response import api_response, payload_from_biz_error
from .utils.request_context import get_request_context

logger = get_logger(__name__)

#: DRF 内置异常 → BizError 子类，按顺序匹配
_DRF_ERROR_MAP: tuple[tuple[type[Exception], type[BizError]], ...] = (
    (drf_exceptions.ValidationError, ValidationError),
    (drf_exceptions.ParseError, ValidationError),
    (drf_exceptions.AuthenticationFailed, AuthError),
    (drf_exceptions.NotAuthenticated, AuthError),
    (drf_exceptions.PermissionDenied, PermissionDeniedError),
    (drf_exceptions.NotFound, NotFoundError),
    (drf_exceptions.Throttled, RateLimitError),
)


def _first_message(detail: Any) -> str:
    """DRF detail 可能是 str / list / dict，取第一条可读信息"""
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    if isinstance(detail, dict) and detail:
        return _first_message(next(iter(detail.values())))
    return str(detail)


def _to_biz_error(exc: Exception) -> Optional[BizError]:
    if isinstance(exc, BizError):
        return exc

    if isinstance(exc, (OperationalError, InterfaceError)):
        logger.warning("数据库暂时不可用", extra=logger_extra({"error": str(exc)}))
        return TransientStoreError()

    for drf_type, biz_type in _DRF_ERROR_MAP:
        if isinstance(exc, drf_type):
            message = _first_message(exc.detail)
            if isinstance(exc, drf_exceptions.Throttled):
                return biz_type(message=message, extra={"wait": exc.wait})
            if isinstance(exc, drf_exceptions.ValidationError):
                return biz_type(message=message, extra={"raw_detail": exc.detail})
            return biz_type(message=message)
    return None


def _internal_error(exc: Exception, context: dict) -> Response:
    request = context.get("request")
    view = context.get("view")
    view_name = view.__class__.__name__ if view else None
    logger.exception(
        "接口未处理异常",
        exc_info=exc,
        extra=logger_extra({
            "path": getattr(request, "path", None),
            "method": getattr(request, "method", None),
            "view": view_name,
        }),
    )
    return api_response(
        code=50000,
        message="内部服务器错误，请稍后重试",
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        extra={"view": view_name, "request_id": get_request_context().get("request_id")},
    )


def custom_exception_handler(exc: Exception, context: dict) -> Optional[Response]:
    biz_error = _to_biz_error(exc)
    if biz_error is not None:
        return Response(payload_from_biz_error(biz_error), status=biz_error.http_status)

    # 其余 DRF 异常（MethodNotAllowed、UnsupportedMediaType 等）保留原状态码
    drf_response = drf_exception_handler(exc, context)
    if drf_response is not None:
        return api_response(
            code=40000 if drf_response.status_code < 500 else 50000,
            message=_first_message(drf_response.data),
            http_status=drf_response.status_code,
            extra={"raw": drf_response.data},
        )

    return _internal_error(exc, context)
