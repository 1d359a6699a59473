# -*- coding: utf-8 -*-
"""
WebSocket 事件名（供前后端对齐，避免魔法字符串）

- leaderboard_updated：排行榜有新的计分提交；字段 contest / updated_at，可选 seq
- leaderboard_snapshot：推送排行榜前 N 名片段，连接建立时也会推送一次；字段 contest / entries，可选 top_limit / generated_at / seq
- pong：心跳响应，前端发送 {"type": "ping"} 时返回；字段 ts
"""

from __future__ import annotations

LEADERBOARD_UPDATED = "leaderboard_updated"
LEADERBOARD_SNAPSHOT = "leaderboard_snapshot"
PONG = "pong"
