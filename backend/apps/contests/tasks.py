from __future__ import annotations

from celery import shared_task
from django.conf import settings

from apps.common.infra.logger import get_logger, logger_extra
from apps.common.infra.revalidation import contest_paths, notify_paths_changed
from apps.common.utils.request_context import bind_task_context
from apps.common.utils.time import now
from apps.common.ws_events import LEADERBOARD_SNAPSHOT, LEADERBOARD_UPDATED
from apps.common.ws_utils import broadcast_contest

from .repo import ContestRepo
from .services import LeaderboardService

logger = get_logger(__name__)


@shared_task(name="contests.refresh_leaderboard")
def refresh_contest_leaderboard(contest_id: int) -> int:
    """
    计分提交后的排行榜刷新：
    - 重写排名快照列
    - 向 contest_<slug> 组推送更新事件与前 N 名片段
    - 通知页面缓存失效（失败只记日志）

    返回排名发生变化的行数；比赛不存在时返回 0
    """
    bind_task_context("refresh_contest_leaderboard")
    contest = ContestRepo().get_or_none(pk=contest_id)
    if contest is None:
        logger.warning("排行榜-比赛不存在，跳过刷新", extra=logger_extra({"contest_id": contest_id}))
        return 0

    service = LeaderboardService()
    changed = service.refresh_ranks(contest)

    if contest.is_visible and contest.leaderboard_enabled:
        generated_at = now().isoformat()
        broadcast_contest(contest, {"event": LEADERBOARD_UPDATED, "contest": contest.slug, "updated_at": generated_at})
        snapshot = service.build_snapshot(contest, limit=int(getattr(settings, "LEADERBOARD_PUSH_TOP", 10)))
        broadcast_contest(contest, {"event": LEADERBOARD_SNAPSHOT, "generated_at": generated_at, **snapshot})

    notify_paths_changed(contest_paths(contest.slug))
    return changed
