from __future__ import annotations

from django.contrib import admin

from .models import Problem


@admin.register(Problem)
class ProblemAdmin(admin.ModelAdmin):
    """题目后台：维护标识、难度与启用状态"""

    list_display = ("id", "title", "slug", "difficulty", "is_active", "created_at")
    list_filter = ("difficulty", "is_active")
    search_fields = ("title", "slug")
    prepopulated_fields = {"slug": ("title",)}
