# -*- coding: utf-8 -*-
"""
比赛 WebSocket 广播

- 组名 contest_<slug>，连接时由 ContestEventConsumer 加入
- 每条事件附带 seq：同一比赛内单调递增，前端丢弃 seq 更小的旧快照
  seq 优先取 Redis 计数（多个 worker 共享），Redis 不可用时退回进程内计数
- 广播失败只记日志，排名刷新任务照常完成
"""

from __future__ import annotations

import itertools
from collections import defaultdict

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from apps.common.infra import redis_client
from apps.common.infra.logger import get_logger, logger_extra
from apps.common.utils.redis_keys import leaderboard_push_seq_key

logger = get_logger(__name__)

_local_seq: defaultdict[int, itertools.count] = defaultdict(lambda: itertools.count(1))


def contest_group_name(contest_slug: str) -> str:
    return f"contest_{contest_slug or 'unknown'}"


def next_push_seq(contest_id: int) -> int:
    seq = redis_client.incr(leaderboard_push_seq_key(contest_id))
    if seq is None:
        seq = next(_local_seq[contest_id])
    return seq


def broadcast_contest(contest, payload: dict) -> None:
    """向比赛组广播一条事件；contest 需要 id 与 slug"""
    layer = get_channel_layer()
    if layer is None:
        return
    group = contest_group_name(contest.slug)
    message = {"type": "broadcast", "seq": next_push_seq(contest.id), **payload}
    try:
        async_to_sync(layer.group_send)(group, message)
    except Exception:
        logger.warning(
            "WebSocket 广播失败，已忽略",
            extra=logger_extra({"group": group, "event": payload.get("event")}),
            exc_info=True,
        )
