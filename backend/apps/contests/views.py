from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import serializers
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common import response
from apps.common.schema_utils import api_response_schema, with_errors

from .schemas import LeaderboardQuerySchema
from .services import ContestContextService, LeaderboardService, serialize_contest

# 视图层：暴露比赛详情与排行榜接口，仅做参数转换与调用服务层

_leaderboard_entry_fields = {
    "rank": serializers.IntegerField(help_text="名次，从 1 开始连续编号"),
    "user_id": serializers.IntegerField(),
    "user_name": serializers.CharField(),
    "points": serializers.IntegerField(),
    "solved_count": serializers.IntegerField(help_text="已通过的不同题目数"),
    "last_successful_submission_at": serializers.DateTimeField(allow_null=True),
}


class ContestDetailView(APIView):
    """比赛详情：隐藏或已删除的比赛返回 404"""

    permission_classes = [AllowAny]
    context_service = ContestContextService()

    @extend_schema(
        summary="比赛详情",
        operation_id="contest_detail",
        request=None,
        responses=api_response_schema(
            "ContestDetail",
            {
                "slug": serializers.CharField(),
                "name": serializers.CharField(),
                "start_time": serializers.DateTimeField(),
                "end_time": serializers.DateTimeField(),
                "scoring_mode": serializers.CharField(),
                "leaderboard_enabled": serializers.BooleanField(),
            },
        ),
    )
    def get(self, request: Request, contest_slug: str) -> Response:
        contest = self.context_service.get_contest(contest_slug)
        return response.success(serialize_contest(contest))


class LeaderboardView(APIView):
    """
    比赛排行榜：
    - 公开只读，不要求登录
    - ?limit= 指定条数，默认且最多 LEADERBOARD_MAX_LIMIT 条
    """

    permission_classes = [AllowAny]
    leaderboard_service = LeaderboardService()

    @extend_schema(
        summary="比赛排行榜",
        operation_id="contest_leaderboard",
        request=None,
        parameters=[
            OpenApiParameter(name="limit", location=OpenApiParameter.QUERY, required=False, type=int, description="返回条数（最大 100）"),
        ],
        responses=with_errors(api_response_schema("Leaderboard", _leaderboard_entry_fields, many=True), 400, 404),
    )
    def get(self, request: Request, contest_slug: str) -> Response:
        schema = LeaderboardQuerySchema.from_dict(
            {"contest_slug": contest_slug, "limit": request.query_params.get("limit")},
            auto_validate=True,
        )
        entries = self.leaderboard_service.execute(schema.contest_slug, schema.limit)
        return response.success(entries, extra={"contest": contest_slug, "count": len(entries)})
