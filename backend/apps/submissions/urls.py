from __future__ import annotations

from django.urls import path

from .views import JudgeCallbackView, SubmissionDetailView, SubmissionListCreateView

app_name = "submissions"

# 路由：代码提交、提交查询与判题机回调
urlpatterns = [
    path("", SubmissionListCreateView.as_view(), name="list-create"),
    path("callback/", JudgeCallbackView.as_view(), name="callback"),
    path("<int:pk>/", SubmissionDetailView.as_view(), name="detail"),
]
