"""
Redis 键名集中管理，避免各模块随意拼接带来不一致
业务场景：排行榜缓存版本号、按版本号存放的排行榜视图
"""

from __future__ import annotations


def leaderboard_version_key(contest_id: int) -> str:
    """排行榜缓存版本号键（每次计分提交后自增）"""
    return f"contest:{contest_id}:leaderboard:version"


def leaderboard_view_key(contest_id: int, version: int, limit: int) -> str:
    """
    某一版本的排行榜视图键

    版本号变化后旧键不再被读取，过期后自然清理
    """
    return f"contest:{contest_id}:leaderboard:v{version}:top{limit}"


def leaderboard_push_seq_key(contest_id: int) -> str:
    """比赛 WebSocket 推送序号键（多进程共享，保证同一比赛内单调递增）"""
    return f"contest:{contest_id}:leaderboard:push_seq"
