from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema, inline_serializer
from rest_framework import serializers
from rest_framework.exceptions import ParseError
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common import response
from apps.common.exceptions import MalformedCallbackError
from apps.common.infra.logger import get_logger, logger_extra
from apps.common.pagination import SubmissionPagination
from apps.common.permissions import IsOwnerOrStaff, JudgeCallbackPermission
from apps.common.schema_utils import api_response_schema, pagination_parameters, with_errors
from apps.common.throttles import SubmissionRateThrottle
from apps.common.utils.request_context import update_request_user

from .schemas import JudgeCallbackSchema, SubmissionCreateSchema, SubmissionListQuerySchema
from .services import (
    JudgeCallbackService,
    SubmissionDispatchService,
    SubmissionQueryService,
    serialize_submission,
)

# 视图层：代码提交 / 提交查询 / 判题机回调，只做参数转换与调用服务层

logger = get_logger(__name__)

_submission_fields = {
    "id": serializers.IntegerField(),
    "problem": serializers.CharField(),
    "contest": serializers.CharField(allow_null=True),
    "user": serializers.IntegerField(),
    "language": serializers.CharField(),
    "status": serializers.CharField(help_text="非终态统一为 pending"),
    "status_description": serializers.CharField(),
    "time": serializers.FloatField(allow_null=True),
    "memory": serializers.IntegerField(allow_null=True),
    "created_at": serializers.DateTimeField(),
    "settled_at": serializers.DateTimeField(allow_null=True),
}


class SubmissionListCreateView(APIView):
    """
    GET：当前用户的提交列表（管理员可看全部），支持 ?problem= / ?contest= 筛选
    POST：提交代码，派发到判题机后立即返回 202，结果通过回调异步更新
    """

    permission_classes = [IsAuthenticated]
    dispatch_service = SubmissionDispatchService()
    query_service = SubmissionQueryService()

    def get_throttles(self):
        if self.request.method == "POST":
            return [SubmissionRateThrottle()]
        return super().get_throttles()

    @extend_schema(
        summary="提交列表",
        operation_id="submission_list",
        parameters=[
            OpenApiParameter(name="problem", location=OpenApiParameter.QUERY, required=False, type=str),
            OpenApiParameter(name="contest", location=OpenApiParameter.QUERY, required=False, type=str),
            *pagination_parameters(),
        ],
        responses=api_response_schema("SubmissionList", _submission_fields, many=True),
    )
    def get(self, request: Request) -> Response:
        schema = SubmissionListQuerySchema.from_dict(
            {"problem": request.query_params.get("problem"), "contest": request.query_params.get("contest")},
            auto_validate=True,
        )
        queryset = self.query_service.execute(request.user, schema)
        paginator = SubmissionPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response([serialize_submission(item) for item in page])

    @extend_schema(
        summary="提交代码",
        operation_id="submission_create",
        request=inline_serializer(
            name="SubmissionCreateRequest",
            fields={
                "problem": serializers.CharField(help_text="题目 slug"),
                "language": serializers.CharField(help_text="cpp / js / py / rs"),
                "source_code": serializers.CharField(),
                "contest": serializers.CharField(required=False, help_text="比赛 slug，留空为练习"),
            },
        ),
        responses=with_errors(api_response_schema("SubmissionCreate", _submission_fields), 400, 401, 404, 429, 503, status=202),
    )
    def post(self, request: Request) -> Response:
        update_request_user(request.user)
        schema = SubmissionCreateSchema.from_dict(request.data)
        submission = self.dispatch_service.dispatch(request.user, schema)
        return response.accepted(serialize_submission(submission), message="提交已受理，等待判题")


class SubmissionDetailView(APIView):
    """提交详情：仅本人或管理员可查看，包含源代码"""

    permission_classes = [IsAuthenticated, IsOwnerOrStaff]
    query_service = SubmissionQueryService()

    @extend_schema(
        summary="提交详情",
        operation_id="submission_detail",
        request=None,
        responses=with_errors(
            api_response_schema("SubmissionDetail", {**_submission_fields, "source_code": serializers.CharField()}),
            401, 403, 404,
        ),
    )
    def get(self, request: Request, pk: int) -> Response:
        submission = self.query_service.get_detail(pk)
        self.check_object_permissions(request, submission)
        return response.success(serialize_submission(submission, include_source=True))


class JudgeCallbackView(APIView):
    """
    判题机回调（Judge0 callback_url）：
    - 不走用户认证，只校验共享密钥请求头
    - 重复回调同样返回 200，outcome 标明 applied / already_terminal / stale
    """

    authentication_classes: list = []
    permission_classes = [JudgeCallbackPermission]
    callback_service = JudgeCallbackService()

    @extend_schema(
        summary="判题回调",
        operation_id="judge_callback",
        request=inline_serializer(
            name="JudgeCallbackRequest",
            fields={
                "token": serializers.CharField(),
                "status": serializers.DictField(help_text="{id, description}"),
                "time": serializers.CharField(required=False, allow_null=True),
                "memory": serializers.CharField(required=False, allow_null=True),
            },
        ),
        responses=with_errors(
            api_response_schema(
                "JudgeCallback",
                {
                    "submission": serializers.IntegerField(),
                    "status": serializers.CharField(),
                    "outcome": serializers.CharField(help_text="applied / already_terminal / stale"),
                    "scored": serializers.BooleanField(),
                },
            ),
            400, 401, 404, 503,
        ),
    )
    def put(self, request: Request) -> Response:
        try:
            try:
                data = request.data
            except ParseError as exc:
                raise MalformedCallbackError(message="回调请求体不是合法 JSON") from exc
            payload = JudgeCallbackSchema.from_dict(data, auto_validate=True)
        except MalformedCallbackError as exc:
            logger.warning("判题回调-载荷不合法", extra=logger_extra({"detail": exc.message, **exc.extra}))
            raise
        result = self.callback_service.ingest(payload, request=request)
        return response.success(result)

    @extend_schema(exclude=True)
    def post(self, request: Request) -> Response:
        return self.put(request)
