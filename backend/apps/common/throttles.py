"""
代码提交限速

每次提交都会占用一次判题机执行，按用户限速（settings 中 code_submit 的频率）；
判题机回调不限速，重复投递由状态机幂等处理
"""

from __future__ import annotations

from typing import Optional

from rest_framework.throttling import SimpleRateThrottle

from apps.common.exceptions import RateLimitError
from apps.common.infra.logger import get_logger, logger_extra

logger = get_logger(__name__)


class SubmissionRateThrottle(SimpleRateThrottle):
    """登录用户按 user_id 计数；匿名请求会先被权限拒绝，这里按 IP 兜底"""

    scope = "code_submit"

    def get_cache_key(self, request, view) -> Optional[str]:
        user = request.user
        if user and user.is_authenticated:
            ident = f"user_{user.pk}"
        else:
            ident = f"ip_{self.get_ident(request)}"
        return self.cache_format % {"scope": self.scope, "ident": ident}

    def throttle_failure(self):
        wait = self.wait()
        logger.warning("提交限流触发", extra=logger_extra({"throttle_key": self.key, "wait": wait}))
        raise RateLimitError(message="提交过于频繁，请稍后再提交", extra={"wait": wait})
