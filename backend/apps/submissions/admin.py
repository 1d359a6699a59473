from __future__ import annotations

from django.contrib import admin

from .models import Submission


# Admin 配置：只读查看提交记录与判题结果


@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    """提交记录后台：便于运营排查判题与回调问题"""

    list_display = ("id", "user", "problem", "contest", "language", "status", "time", "memory", "created_at",
                    "settled_at")
    list_filter = ("status", "language", "contest")
    search_fields = ("user__username", "problem__slug", "token")
    date_hierarchy = "created_at"

    # 只读：提交状态只能由判题回调推进
    readonly_fields = (
        "user",
        "contest",
        "problem",
        "language",
        "source_code",
        "token",
        "status",
        "status_description",
        "time",
        "memory",
        "created_at",
        "settled_at",
    )

    def get_form(self, request, obj=None, **kwargs):
        """为提交详情页字段添加简明说明，便于审计"""
        form = super().get_form(request, obj, **kwargs)
        help_texts = {
            "token": "判题机受理时返回的 token，回调按此定位提交",
            "status": "判题状态，只能向前推进，终态后不再变化",
            "status_description": "判题机返回的原始状态描述",
            "time": "运行耗时（秒），判题机未上报时为空",
            "memory": "内存占用（KB），判题机未上报时为空",
            "settled_at": "首次进入终态的时间",
        }
        for field_name, text in help_texts.items():
            if field_name in form.base_fields:
                form.base_fields[field_name].help_text = text
        return form

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
