"""
页面缓存失效通知（fire-and-forget）：
- 计分提交后通知前端渲染层“这些逻辑路径的数据已变化”
- POST {REVALIDATE_URL}，请求头 x-revalidate-secret，请求体 {"path": "..."}
- 任何失败只记录日志，绝不向上抛出：缓存失效是尽力而为，不能影响计分
- REVALIDATE_URL 为空时直接跳过（本地/测试环境）
"""

from __future__ import annotations

from typing import Iterable

import requests
from django.conf import settings

from apps.common.infra.logger import get_logger, logger_extra

_logger = get_logger(__name__)

REVALIDATE_SECRET_HEADER = "x-revalidate-secret"


def contest_paths(contest_slug: str) -> list[str]:
    """比赛相关的逻辑路径：比赛详情页与排行榜页"""
    return [f"/contests/{contest_slug}", f"/contests/{contest_slug}/leaderboard"]


def notify_paths_changed(paths: Iterable[str]) -> list[str]:
    """
    逐个通知路径失效，返回通知成功的路径列表
    """
    url = getattr(settings, "REVALIDATE_URL", "")
    if not url:
        return []
    secret = getattr(settings, "REVALIDATE_SECRET", "")
    timeout = float(getattr(settings, "REVALIDATE_TIMEOUT_SECONDS", 2))
    headers = {REVALIDATE_SECRET_HEADER: secret} if secret else {}

    notified: list[str] = []
    for path in paths:
        try:
            resp = requests.post(url, json={"path": path}, headers=headers, timeout=timeout)
        except requests.RequestException as exc:
            _logger.warning("缓存失效通知-请求失败", extra=logger_extra({"target": path, "error": str(exc)}))
            continue
        if resp.status_code >= 400:
            _logger.warning(
                "缓存失效通知-对端拒绝",
                extra=logger_extra({"target": path, "status_code": resp.status_code}),
            )
            continue
        notified.append(path)

    if notified:
        _logger.info("缓存失效通知-完成", extra=logger_extra({"paths": notified}))
    return notified
