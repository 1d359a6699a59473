from __future__ import annotations

from typing import Any, Iterable, Optional

from django.db.models import QuerySet

from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import NotFoundError, UnknownTokenError

from .models import Submission


# 仓储层：封装提交记录的查询、按 token 加锁与条件状态更新


class SubmissionRepo(BaseRepo[Submission]):
    """提交仓储"""

    model = Submission

    def filter_with_related(self, **kwargs) -> QuerySet[Submission]:
        """带常用外键的筛选，减少后续访问 N+1"""
        return self.filter(**kwargs).select_related("contest", "problem")

    def get_detail(self, pk: int) -> Submission:
        submission = self.filter_with_related(pk=pk).first()
        if submission is None:
            raise NotFoundError(message="提交不存在")
        return submission

    def lock_by_token(self, token: str) -> Submission:
        """
        按 token 加行锁取出提交，未找到抛 UnknownTokenError

        必须在 transaction.atomic() 内调用
        """
        submission = self.lock(token=token)
        if submission is None:
            raise UnknownTokenError(extra={"token_known": False})
        return submission

    def update_status_if(
            self,
            pk: int,
            *,
            allowed_from: Iterable[str],
            values: dict[str, Any],
    ) -> bool:
        """
        条件状态更新：只有当前状态在 allowed_from 中才会写入

        单条 UPDATE ... WHERE id = ? AND status IN (...)，返回是否命中
        """
        return self.update_where({"pk": pk, "status__in": list(allowed_from)}, values) == 1

    def current_status(self, pk: int) -> Optional[str]:
        return self.filter(pk=pk).values_list("status", flat=True).first()
