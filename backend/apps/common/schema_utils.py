# apps/common/schema_utils.py
"""
OpenAPI 辅助：统一响应包装 {code, message, data, extra} 与错误响应说明
"""

from __future__ import annotations

from rest_framework import serializers
from drf_spectacular.utils import inline_serializer, OpenApiParameter

#: 错误响应与成功响应共用外层结构，data 恒为 null
ERROR_RESPONSE = inline_serializer(
    name="ErrorResponse",
    fields={
        "code": serializers.IntegerField(help_text="业务错误码，如 48201 回调载荷不合法、50306 存储暂不可用"),
        "message": serializers.CharField(),
        "data": serializers.JSONField(allow_null=True),
        "extra": serializers.DictField(required=False, help_text="错误补充信息，如支持的语言列表"),
    },
)


def api_response_schema(name: str, data_fields: dict, *, many: bool = False) -> serializers.Serializer:
    """成功响应：data_fields 描述 data 内部字段，many=True 时 data 为列表"""
    data_serializer = inline_serializer(name=f"{name}Data", fields=data_fields, many=many)
    return inline_serializer(
        name=f"{name}Response",
        fields={
            "code": serializers.IntegerField(help_text="0 表示成功"),
            "message": serializers.CharField(),
            "data": data_serializer,
            "extra": serializers.DictField(required=False, allow_null=True),
        },
    )


def with_errors(success: serializers.Serializer, *error_statuses: int, status: int = 200) -> dict:
    """extend_schema(responses=...) 用：成功响应加上可能出现的错误状态码"""
    responses: dict = {status: success}
    for code in error_statuses:
        responses[code] = ERROR_RESPONSE
    return responses


def pagination_parameters() -> list[OpenApiParameter]:
    return [
        OpenApiParameter(name="page", location=OpenApiParameter.QUERY, description="页码，从 1 开始", required=False, type=int),
        OpenApiParameter(name="page_size", location=OpenApiParameter.QUERY, description="每页条数", required=False, type=int),
    ]
