"""
全局 WebSocket 路由配置

- 比赛事件通道：排行榜更新 / 排行榜快照推送，只读
"""

from django.urls import path

from apps.common.consumers import ContestEventConsumer

websocket_urlpatterns = [
    path("ws/contests/<slug:contest_slug>/", ContestEventConsumer.as_asgi(), name="ws-contest-events"),
]
