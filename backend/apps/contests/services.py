from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.conf import settings
from django.db import transaction

from apps.common.base.base_service import BaseService
from apps.common.exceptions import (
    ContestEndedError,
    ContestNotStartedError,
    LeaderboardDisabledError,
    ValidationError,
)
from apps.common.infra import redis_client
from apps.common.infra.logger import get_logger, logger_extra
from apps.common.utils.redis_keys import leaderboard_version_key, leaderboard_view_key
from apps.common.utils.time import isoformat

from .models import Contest, ContestProblem
from .repo import ContestPointsRepo, ContestProblemRepo, ContestRepo, ProblemAwardRepo

# 服务层：比赛上下文校验、计分、排行榜读取与刷新

logger = get_logger(__name__)


def serialize_contest(contest: Contest) -> dict:
    """比赛的对外简要信息"""
    return {
        "slug": contest.slug,
        "name": contest.name,
        "start_time": isoformat(contest.start_time),
        "end_time": isoformat(contest.end_time),
        "scoring_mode": contest.scoring_mode,
        "leaderboard_enabled": contest.leaderboard_enabled,
    }


def display_name(row: dict) -> str:
    """
    排行榜展示名：
    - 有名有姓用 "名 姓"
    - 否则取邮箱 @ 前缀，再否则用户名
    """
    first = (row.get("user__first_name") or "").strip()
    last = (row.get("user__last_name") or "").strip()
    if first and last:
        return f"{first} {last}"
    email = row.get("user__email") or ""
    if email:
        return email.split("@")[0]
    return row.get("user__username") or f"user-{row.get('user_id')}"


def calculate_points(contest: Contest, link: ContestProblem, submitted_at: datetime) -> int:
    """
    计算本题通过可得分值

    - 固定分值：自定义分值，否则按难度
    - 时间衰减：round(剩余时长 / 比赛时长 * base + base / 2)，不低于 base / 2
      剩余时长按提交创建时间计算，与回调何时到达无关
    """
    base = link.base_points
    if contest.scoring_mode != Contest.ScoringMode.TIME_DECAY:
        return base

    floor = base // 2
    duration = (contest.end_time - contest.start_time).total_seconds()
    if duration <= 0:
        return floor
    remaining = (contest.end_time - submitted_at).total_seconds()
    remaining = min(max(remaining, 0.0), duration)
    return max(int(round(remaining / duration * base + base / 2)), floor)


class ContestContextService(BaseService[Contest]):
    """
    提供统一的比赛上下文（可见性、时间窗口校验）
    """

    atomic_enabled = False

    def __init__(self, contest_repo: ContestRepo | None = None, problem_repo: ContestProblemRepo | None = None):
        self.contest_repo = contest_repo or ContestRepo()
        self.problem_repo = problem_repo or ContestProblemRepo()

    def get_contest(self, slug: str) -> Contest:
        """根据 slug 获取对外可见的比赛"""
        return self.contest_repo.get_visible_by_slug(slug)

    @staticmethod
    def ensure_contest_running(contest: Contest) -> None:
        """比赛已开始且未结束"""
        if not contest.has_started:
            raise ContestNotStartedError()
        if contest.has_ended:
            raise ContestEndedError()

    def get_problem_link(self, contest: Contest, problem_id: int) -> ContestProblem:
        return self.problem_repo.get_link(contest_id=contest.id, problem_id=problem_id)

    def perform(self, slug: str) -> Contest:
        return self.get_contest(slug)


@dataclass(frozen=True)
class AwardResult:
    """计分结果：granted=False 表示该题此前已计分，本次无变更"""

    granted: bool
    points: int = 0
    total_points: Optional[int] = None


class ScoringService(BaseService[AwardResult]):
    """
    计分服务：

    apply_acceptance(user_id, contest_id, problem_id, points, settled_at)
    - 只在提交首次进入 ACCEPTED 时调用
    - 同一 (user, contest, problem) 只计分一次：先插入唯一计分标记，冲突即无操作
    - 积分行不存在则带分值创建，存在则单条 UPDATE 原子递增
    - 标记与递增在同一事务内提交；外层已有事务时作为保存点加入
    - 提交后刷新排行榜缓存版本号并异步刷新排名快照
    """

    atomic_enabled = True

    def __init__(self, points_repo: ContestPointsRepo | None = None, award_repo: ProblemAwardRepo | None = None):
        self.points_repo = points_repo or ContestPointsRepo()
        self.award_repo = award_repo or ProblemAwardRepo()

    def validate(self, user_id: int, contest_id: int, problem_id: int, points: int, settled_at: datetime, **kwargs) -> None:
        if points < 0:
            raise ValidationError(message="分值不能为负数")
        if settled_at is None:
            raise ValidationError(message="缺少通过时间")

    def perform(
            self,
            user_id: int,
            contest_id: int,
            problem_id: int,
            points: int,
            settled_at: datetime,
            *,
            submission_id: Optional[int] = None,
    ) -> AwardResult:
        award = self.award_repo.try_create(
            user_id=user_id,
            contest_id=contest_id,
            problem_id=problem_id,
            points=points,
            awarded_at=settled_at,
            submission_id=submission_id,
        )
        log_fields = {
            "contest_id": contest_id,
            "user_id": user_id,
            "problem_id": problem_id,
            "submission_id": submission_id,
        }
        if award is None:
            logger.info("计分-该题已计分，跳过", extra=logger_extra(log_fields))
            return AwardResult(granted=False)

        row = self.points_repo.lock(user_id=user_id, contest_id=contest_id)
        if row is None:
            row = self.points_repo.create_initial(
                user_id=user_id, contest_id=contest_id, points=points, settled_at=settled_at
            )
            if row is None:
                # 并发首次创建，对方已插入，改走递增
                row = self.points_repo.lock(user_id=user_id, contest_id=contest_id)
                self.points_repo.increment(row_id=row.pk, points=points, settled_at=settled_at)
        else:
            self.points_repo.increment(row_id=row.pk, points=points, settled_at=settled_at)

        total = self.points_repo.filter(pk=row.pk).values_list("points", flat=True).first()
        logger.info("计分-已授予", extra=logger_extra({**log_fields, "points": points, "total_points": total}))

        transaction.on_commit(lambda: LeaderboardService.mark_dirty(contest_id))
        return AwardResult(granted=True, points=points, total_points=total)

    def apply_acceptance(
            self,
            user_id: int,
            contest_id: int,
            problem_id: int,
            points: int,
            settled_at: datetime,
            *,
            submission_id: Optional[int] = None,
    ) -> AwardResult:
        return self.execute(user_id, contest_id, problem_id, points, settled_at, submission_id=submission_id)


class LeaderboardService(BaseService[list[dict]]):
    """
    排行榜服务：

    - 排序：积分降序 → 最近通过时间升序（越早越靠前）→ 用户 ID 升序
    - 排名：按最终顺序从 1 开始连续编号，同分同时间也不并列
    - 缓存：按比赛版本号缓存视图，计分提交后版本号自增，旧视图不再被读取
    - Redis 不可用时直接查库
    """

    atomic_enabled = False

    def __init__(self, contest_repo: ContestRepo | None = None, points_repo: ContestPointsRepo | None = None):
        self.contest_repo = contest_repo or ContestRepo()
        self.points_repo = points_repo or ContestPointsRepo()

    @staticmethod
    def max_limit() -> int:
        return int(getattr(settings, "LEADERBOARD_MAX_LIMIT", 100))

    @classmethod
    def clamp_limit(cls, limit: Optional[int]) -> int:
        upper = cls.max_limit()
        if limit is None:
            return upper
        return max(1, min(int(limit), upper))

    def get_public_contest(self, slug: str) -> Contest:
        """可见且开放排行榜的比赛"""
        contest = self.contest_repo.get_visible_by_slug(slug)
        if not contest.leaderboard_enabled:
            raise LeaderboardDisabledError()
        return contest

    @staticmethod
    def current_version(contest_id: int) -> Optional[int]:
        """当前缓存版本号；Redis 不可用返回 None（不走缓存）"""
        raw = redis_client.get(leaderboard_version_key(contest_id))
        if raw is None:
            return 0 if getattr(settings, "REDIS_ENABLED", True) else None
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    def _build_entries(self, contest_id: int, limit: int) -> list[dict]:
        rows = self.points_repo.leaderboard_rows(contest_id, limit)
        return [
            {
                "rank": position,
                "user_id": row["user_id"],
                "user_name": display_name(row),
                "points": row["points"],
                "solved_count": row["solved_count"],
                "last_successful_submission_at": isoformat(row["last_successful_submission_at"]),
            }
            for position, row in enumerate(rows, start=1)
        ]

    def get_top(self, contest: Contest, limit: Optional[int] = None) -> list[dict]:
        limit = self.clamp_limit(limit)
        version = self.current_version(contest.id)
        cache_key = leaderboard_view_key(contest.id, version, limit) if version is not None else None
        if cache_key:
            cached = redis_client.get_json(cache_key)
            if isinstance(cached, list):
                return cached

        entries = self._build_entries(contest.id, limit)
        if cache_key:
            redis_client.set_json(cache_key, entries, ex=int(getattr(settings, "LEADERBOARD_CACHE_TTL", 60)))
        return entries

    def perform(self, contest_slug: str, limit: Optional[int] = None) -> list[dict]:
        contest = self.get_public_contest(contest_slug)
        return self.get_top(contest, limit)

    def build_snapshot(self, contest: Contest, *, limit: int) -> dict:
        """WebSocket 推送用的排行榜片段"""
        limit = self.clamp_limit(limit)
        return {
            "contest": contest.slug,
            "top_limit": limit,
            "entries": self.get_top(contest, limit),
        }

    def refresh_ranks(self, contest: Contest) -> int:
        """重写排名快照列，返回变化行数"""
        changed = self.points_repo.write_rank_snapshot(contest.id)
        logger.info(
            "排行榜-排名快照已刷新",
            extra=logger_extra({"contest": contest.slug, "changed_rows": changed}),
        )
        return changed

    @staticmethod
    def invalidate_cache(contest_id: int) -> Optional[int]:
        """版本号自增，使该比赛所有已缓存视图失效"""
        return redis_client.incr(leaderboard_version_key(contest_id))

    @classmethod
    def mark_dirty(cls, contest_id: int) -> None:
        """
        计分事务提交后调用：
        - 同步自增缓存版本号，保证之后的读取不会命中旧视图
        - 投递排名刷新任务（写快照 / WebSocket 推送 / 页面缓存失效通知）
        """
        from .tasks import refresh_contest_leaderboard

        cls.invalidate_cache(contest_id)
        try:
            refresh_contest_leaderboard.delay(contest_id)
        except Exception:
            # 投递失败不影响已提交的计分，下一次计分会再次投递
            logger.warning(
                "排行榜-刷新任务投递失败",
                extra=logger_extra({"contest_id": contest_id}),
                exc_info=True,
            )
