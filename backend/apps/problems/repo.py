from __future__ import annotations

from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import NotFoundError, ProblemNotAvailableError

from .models import Problem


class ProblemRepo(BaseRepo[Problem]):
    """题目仓储：按 slug 查询并校验启用状态"""

    model = Problem

    def get_by_slug(self, slug: str) -> Problem:
        problem = self.get_or_none(slug=slug)
        if problem is None:
            raise NotFoundError(message="题目不存在")
        return problem

    def get_active_by_slug(self, slug: str) -> Problem:
        problem = self.get_by_slug(slug)
        if not problem.is_active:
            raise ProblemNotAvailableError()
        return problem
