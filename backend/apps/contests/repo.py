from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import DateTimeField, F, Value
from django.db.models.functions import Coalesce, Greatest
from django.utils import timezone

from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import NotFoundError, ProblemNotInContestError

from .models import Contest, ContestPoints, ContestProblem, ProblemAward


# 仓储层：封装比赛、比赛题目、积分汇总、计分标记的 ORM 访问


class ContestRepo(BaseRepo[Contest]):
    """比赛仓储：提供 slug 查询等快捷方法"""
    model = Contest

    def get_by_slug(self, slug: str) -> Contest:
        """通过 slug 获取比赛，未找到抛业务级 404"""
        try:
            return self.filter(slug=slug).get()
        except Contest.DoesNotExist as exc:  # type: ignore[attr-defined]
            raise NotFoundError(message="比赛不存在") from exc

    def get_visible_by_slug(self, slug: str) -> Contest:
        """
        只返回未隐藏且未软删除的比赛

        隐藏/已删除的比赛对外与不存在表现一致（404），避免泄露存在性
        """
        try:
            return self.filter(slug=slug, hidden=False, deleted_at__isnull=True).get()
        except Contest.DoesNotExist as exc:  # type: ignore[attr-defined]
            raise NotFoundError(message="比赛不存在") from exc


class ContestProblemRepo(BaseRepo[ContestProblem]):
    """比赛题目仓储"""
    model = ContestProblem

    def get_queryset(self):
        return super().get_queryset().select_related("problem", "contest")

    def get_link(self, *, contest_id: int, problem_id: int) -> ContestProblem:
        link = self.get_or_none(contest_id=contest_id, problem_id=problem_id)
        if link is None:
            raise ProblemNotInContestError()
        return link


class ProblemAwardRepo(BaseRepo[ProblemAward]):
    """计分标记仓储"""
    model = ProblemAward

    def try_create(
            self,
            *,
            user_id: int,
            contest_id: int,
            problem_id: int,
            points: int,
            awarded_at: datetime,
            submission_id: Optional[int] = None,
    ) -> Optional[ProblemAward]:
        """
        插入计分标记；唯一约束冲突说明该题已计过分，返回 None

        在保存点内执行，冲突只回滚保存点，不影响外层事务
        """
        try:
            with transaction.atomic():
                return self.create({
                    "user_id": user_id,
                    "contest_id": contest_id,
                    "problem_id": problem_id,
                    "submission_id": submission_id,
                    "points": points,
                    "awarded_at": awarded_at,
                })
        except IntegrityError:
            return None


class ContestPointsRepo(BaseRepo[ContestPoints]):
    """积分汇总仓储：原子递增、排行榜查询、排名快照写入"""
    model = ContestPoints

    #: 排行榜排序：积分降序 → 最近通过时间升序 → 用户 ID 升序（稳定兜底）
    LEADERBOARD_ORDER = ("-points", F("last_successful_submission_at").asc(nulls_last=True), "user_id")

    def create_initial(self, *, user_id: int, contest_id: int, points: int, settled_at: datetime) -> Optional[ContestPoints]:
        """
        首次通过时创建积分行（直接带上本次分值）

        并发创建时唯一约束冲突，返回 None，由调用方改走递增路径
        """
        try:
            with transaction.atomic():
                return self.create({
                    "user_id": user_id,
                    "contest_id": contest_id,
                    "points": points,
                    "solved_count": 1,
                    "last_successful_submission_at": settled_at,
                })
        except IntegrityError:
            return None

    def increment(self, *, row_id: int, points: int, settled_at: datetime) -> int:
        """
        单条 UPDATE 原子递增：
        - points = points + N，solved_count = solved_count + 1
        - last_successful_submission_at 取已有值与本次时间中较晚者
        """
        settled = Value(settled_at, output_field=DateTimeField())
        return self.update_where(
            {"pk": row_id},
            {
                "points": F("points") + points,
                "solved_count": F("solved_count") + 1,
                "last_successful_submission_at": Greatest(Coalesce(F("last_successful_submission_at"), settled), settled),
                "updated_at": timezone.now(),
            },
        )

    def leaderboard_rows(self, contest_id: int, limit: int) -> list[dict]:
        """
        单条 SELECT 读取排行榜前 limit 行

        每行都是已提交事务的完整状态，不会读到半个递增
        """
        return list(
            self.filter(contest_id=contest_id)
            .order_by(*self.LEADERBOARD_ORDER)
            .values(
                "user_id",
                "points",
                "solved_count",
                "last_successful_submission_at",
                "user__username",
                "user__first_name",
                "user__last_name",
                "user__email",
            )[:limit]
        )

    def write_rank_snapshot(self, contest_id: int) -> int:
        """
        按排行榜顺序重写 rank 列，只更新发生变化的行，返回更新行数

        只写 rank 字段，不会覆盖计分服务并发写入的积分
        """
        rows = list(
            self.filter(contest_id=contest_id).order_by(*self.LEADERBOARD_ORDER).only("id", "rank")
        )
        changed: list[ContestPoints] = []
        for position, row in enumerate(rows, start=1):
            if row.rank != position:
                row.rank = position
                changed.append(row)
        if changed:
            self.model._default_manager.bulk_update(changed, ["rank"], batch_size=500)
        return len(changed)
