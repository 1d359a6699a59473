from __future__ import annotations

from apps.common.security import client_ip
from apps.common.utils.request_context import (
    clear_request_context,
    generate_request_id,
    set_request_context,
)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware:
    """
    请求上下文中间件：
    - 进入时写入 request_id / 用户 / 方法 / 路径 / IP，供日志格式化器读取
    - 响应头回写 X-Request-ID；判题机回调出问题时可按该值检索日志
    - 无论成功还是异常都清理上下文，避免串到下一个请求
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        user = getattr(request, "user", None)
        authenticated = bool(user and user.is_authenticated)
        set_request_context(
            request_id=request.request_id,
            user_id=user.id if authenticated else None,
            username=user.username if authenticated else "",
            path=request.path,
            method=request.method,
            ip=client_ip(request),
        )
        try:
            response = self.get_response(request)
        finally:
            clear_request_context()
        response[REQUEST_ID_HEADER] = request.request_id
        return response
