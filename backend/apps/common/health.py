from __future__ import annotations

from django.db import connection
from drf_spectacular.utils import extend_schema
from rest_framework import serializers
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common import response
from apps.common.infra import redis_client
from apps.common.schema_utils import api_response_schema

_CACHE_STATES = {None: "disabled", True: "ok", False: "unavailable"}


class HealthCheckView(APIView):
    """
    健康检查（负载均衡探活）

    - 数据库探测失败直接抛出，由异常处理器返回 503
    - Redis 只是排行榜缓存，不可用时仍返回 200，cache 字段标记为 unavailable
    """

    permission_classes = [AllowAny]
    authentication_classes: list = []

    @extend_schema(
        summary="健康检查",
        request=None,
        responses=api_response_schema(
            "HealthCheck",
            {
                "status": serializers.CharField(),
                "database": serializers.CharField(),
                "cache": serializers.CharField(help_text="ok / disabled / unavailable"),
            },
        ),
    )
    def get(self, request: Request) -> Response:
        _ = request
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        cache_state = _CACHE_STATES[redis_client.ping()]
        return response.success({"status": "ok", "database": "ok", "cache": cache_state})
