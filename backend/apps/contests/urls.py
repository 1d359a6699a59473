from __future__ import annotations

from django.urls import path

from .views import ContestDetailView, LeaderboardView

# 路由配置：声明比赛与排行榜相关的 API 路径

app_name = "contests"

urlpatterns = [
    # 比赛详情
    path("<slug:contest_slug>/", ContestDetailView.as_view(), name="detail"),
    # 排行榜
    path("<slug:contest_slug>/leaderboard/", LeaderboardView.as_view(), name="leaderboard"),
]
