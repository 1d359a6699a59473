# apps/common/base/base_repo.py

from __future__ import annotations

from abc import ABC
from typing import Any, Generic, Optional, TypeVar

from django.db.models import Model, QuerySet

T = TypeVar("T", bound=Model)


class BaseRepo(ABC, Generic[T]):
    """
    仓储基类：Service 只通过 Repo 读写数据库

    判题流水线里的写入几乎都是“带条件的单条语句”：
    - 提交状态推进：UPDATE ... WHERE status IN (...)，由受影响行数决定谁生效
    - 积分递增：UPDATE ... SET points = points + N
    因此基类除了查询入口，只额外提供行锁与条件更新两种原语

    用法：class SubmissionRepo(BaseRepo[Submission]): model = Submission
    """

    #: 子类必须指定对应的模型
    model: type[T]

    def get_queryset(self) -> QuerySet[T]:
        """默认 QuerySet，子类可覆盖以附加 select_related"""
        if not getattr(self, "model", None):
            raise NotImplementedError("BaseRepo 子类必须声明 model 属性")
        return self.model._default_manager.all()

    def filter(self, *, queryset: Optional[QuerySet[T]] = None, **filters) -> QuerySet[T]:
        qs = queryset if queryset is not None else self.get_queryset()
        return qs.filter(**filters)

    def get_or_none(self, *, queryset: Optional[QuerySet[T]] = None, **filters) -> Optional[T]:
        return self.filter(queryset=queryset, **filters).first()

    def create(self, data: dict) -> T:
        return self.model._default_manager.create(**data)

    # 以下两个方法必须在 transaction.atomic() 内调用

    def lock(self, **filters) -> Optional[T]:
        """SELECT ... FOR UPDATE，未命中返回 None"""
        return self.model._default_manager.select_for_update().filter(**filters).first()

    def update_where(self, filters: dict[str, Any], values: dict[str, Any]) -> int:
        """
        UPDATE ... SET values WHERE filters，返回受影响行数

        values 可以包含 F() 表达式；单条语句的原子性由数据库保证
        """
        return self.model._default_manager.filter(**filters).update(**values)
