"""
提交列表分页器

?page= 从 1 开始，?page_size= 可选；默认值取 settings.SUBMISSION_PAGE_SIZE，
上限取 settings.SUBMISSION_MAX_PAGE_SIZE，非法值回落到默认值
"""

from __future__ import annotations

from django.conf import settings
from rest_framework.pagination import PageNumberPagination
from rest_framework.request import Request
from rest_framework.response import Response

from apps.common.response import page_success


class SubmissionPagination(PageNumberPagination):
    page_size_query_param = "page_size"

    def __init__(self):
        self.page_size = int(getattr(settings, "SUBMISSION_PAGE_SIZE", 20))
        self.max_page_size = int(getattr(settings, "SUBMISSION_MAX_PAGE_SIZE", 100))

    def get_paginated_response(self, data) -> Response:
        return page_success(data, self.page)

    def get_page_size(self, request: Request) -> int:
        raw = request.query_params.get(self.page_size_query_param)
        try:
            size = int(raw) if raw is not None else self.page_size
        except (TypeError, ValueError):
            size = self.page_size
        return max(1, min(size, self.max_page_size))
