# -*- coding: utf-8 -*-
"""
比赛事件 WebSocket 消费者

功能目标：
- 轻量级实时推送，不做持久化/历史消息
- 按比赛 slug 分组推送排行榜更新
- 排行榜对公开比赛只读开放，不要求登录；隐藏/已删除比赛拒绝连接
"""

from __future__ import annotations

import asyncio
import time

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings

from apps.common.exceptions import BizError
from apps.common.ws_events import LEADERBOARD_SNAPSHOT, PONG
from apps.common.ws_utils import contest_group_name
from apps.common.utils.time import now


class HeartbeatConsumer(AsyncJsonWebsocketConsumer):
    """
    带心跳监控的基础 Consumer
    - 前端发送 {"type":"ping"}，返回 {"event":"pong"} 并更新最后活跃时间
    - 长时间未收到 ping 自动断开
    """

    heartbeat_timeout_seconds: int = 120
    heartbeat_interval_seconds: int = 25
    _last_ping: float = 0.0
    _monitor_task: asyncio.Task | None = None

    def start_heartbeat(self) -> None:
        self._last_ping = time.time()
        self._monitor_task = asyncio.create_task(self._monitor_heartbeat())

    async def disconnect(self, close_code):
        if getattr(self, "_monitor_task", None):
            self._monitor_task.cancel()
        return None

    async def receive_json(self, content, **kwargs):
        if isinstance(content, dict) and content.get("type") == "ping":
            self._last_ping = time.time()
            await self.send_json({"event": PONG, "ts": self._last_ping})
        return None

    async def _monitor_heartbeat(self):
        try:
            while True:
                await asyncio.sleep(self.heartbeat_interval_seconds)
                current = time.time()
                if current - getattr(self, "_last_ping", current) > self.heartbeat_timeout_seconds:
                    await self.close(code=4410)
                    break
        except asyncio.CancelledError:
            return None


class ContestEventConsumer(HeartbeatConsumer):
    """
    比赛事件通道：
    - 连接时校验比赛可见且开放排行榜，否则以 4404 关闭
    - 加入 contest_<slug> 组，并立即推送一次排行榜快照
    """

    contest_slug: str | None = None
    group_name: str | None = None

    @database_sync_to_async
    def _load_snapshot(self, slug: str) -> dict | None:
        from apps.contests.services import LeaderboardService

        service = LeaderboardService()
        try:
            contest = service.get_public_contest(slug)
        except BizError:
            return None
        limit = int(getattr(settings, "LEADERBOARD_PUSH_TOP", 10))
        return service.build_snapshot(contest, limit=limit)

    async def connect(self):
        self.contest_slug = self.scope["url_route"]["kwargs"].get("contest_slug")
        snapshot = await self._load_snapshot(self.contest_slug)
        if snapshot is None:
            await self.close(code=4404)
            return None
        self.group_name = contest_group_name(self.contest_slug)
        await self.accept()
        if self.channel_layer:
            await self.channel_layer.group_add(self.group_name, self.channel_name)
        self.start_heartbeat()
        await self.send_json({"event": LEADERBOARD_SNAPSHOT, "generated_at": now().isoformat(), **snapshot})
        return None

    async def disconnect(self, close_code):
        if getattr(self, "group_name", None) and self.channel_layer:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
        return await super().disconnect(close_code)

    async def broadcast(self, event):
        """统一广播入口：透传事件数据（去掉 channels 内部的 type 字段）"""
        payload = {key: value for key, value in event.items() if key != "type"}
        await self.send_json(payload)
