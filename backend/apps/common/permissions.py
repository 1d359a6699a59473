"""
通用权限封装（apps.common.permissions）

职责：
- 判题回调：共享密钥校验（在任何业务处理之前拒绝）
- 提交记录：仅本人或管理员可查看
- 出错时统一抛出 BizError 子类，由全局异常处理器统一包装响应
"""

from __future__ import annotations

from rest_framework.permissions import BasePermission
from rest_framework.request import Request

from .exceptions import CallbackAuthError, PermissionDeniedError
from .security import CALLBACK_SECRET_HEADER, get_judge_callback_secret, log_security_event, secrets_match


class JudgeCallbackPermission(BasePermission):
    """
    判题机回调鉴权：
    - 请求头 X-Judge0-Secret 与 settings.JUDGE0_CALLBACK_SECRET 常量时间比较
    - 未配置密钥时拒绝所有回调（默认关闭）
    - 失败抛 CallbackAuthError（401），并记录安全事件
    """

    def has_permission(self, request: Request, view) -> bool:
        expected = get_judge_callback_secret()
        provided = request.headers.get(CALLBACK_SECRET_HEADER)
        if secrets_match(provided, expected):
            return True
        log_security_event(
            action="callback_auth_failed",
            request=request,
            detail="缺少回调密钥" if not provided else "回调密钥不匹配",
            extra_fields={"secret_configured": bool(expected)},
        )
        raise CallbackAuthError()


class IsOwnerOrStaff(BasePermission):
    """
    对象级权限：资源的 user 字段为当前用户，或当前用户为 staff
    """

    owner_field = "user_id"

    def has_permission(self, request: Request, view) -> bool:
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            raise PermissionDeniedError(message="请先登录后再执行此操作")
        return True

    def has_object_permission(self, request: Request, view, obj) -> bool:
        user = request.user
        if user.is_staff or getattr(obj, self.owner_field, None) == user.id:
            return True
        raise PermissionDeniedError(message="只能查看自己的提交")
