from __future__ import annotations

from django.contrib import admin, messages
from django.utils import timezone

from apps.common.infra.logger import get_logger, logger_extra

from .models import Contest, ContestPoints, ContestProblem, ProblemAward
from .services import LeaderboardService

# 后台注册：仅负责 Django Admin 展示配置，不包含业务逻辑

logger = get_logger(__name__)


class AdminAuditMixin:
    """后台审计日志：记录增删改关键对象"""

    audit_model = ""

    def _audit(self, request, action: str, **fields):
        logger.info(
            f"Admin{action}",
            extra=logger_extra({
                "admin": getattr(request.user, "username", None),
                "model": self.audit_model,
                **fields,
            }),
        )

    def log_change(self, request, obj, message):
        super().log_change(request, obj, message)  # type: ignore[misc]
        self._audit(request, "修改", object_id=getattr(obj, "pk", None))

    def log_addition(self, request, obj, message):
        super().log_addition(request, obj, message)  # type: ignore[misc]
        self._audit(request, "新增", object_id=getattr(obj, "pk", None))


class ContestProblemInline(admin.TabularInline):
    """比赛详情页内联题目管理"""

    model = ContestProblem
    extra = 0
    fields = ("problem", "points", "order")
    raw_id_fields = ("problem",)


@admin.register(Contest)
class ContestAdmin(AdminAuditMixin, admin.ModelAdmin):
    """
    比赛后台：
    - 删除为软删除（写 deleted_at），积分与提交记录保留
    - 提供“刷新排行榜”操作，手动触发缓存失效与排名快照重写
    """

    audit_model = "Contest"
    list_display = ("id", "name", "slug", "start_time", "end_time", "hidden", "deleted_at", "scoring_mode", "leaderboard_enabled")
    list_filter = ("hidden", "scoring_mode", "leaderboard_enabled")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [ContestProblemInline]
    actions = ["refresh_leaderboard", "restore_contests"]

    def delete_model(self, request, obj):
        """软删除：对外立即不可见"""
        obj.deleted_at = timezone.now()
        obj.save(update_fields=["deleted_at", "updated_at"])
        LeaderboardService.invalidate_cache(obj.pk)
        self._audit(request, "删除", object_id=obj.pk, soft=True)

    def delete_queryset(self, request, queryset):
        for obj in queryset:
            self.delete_model(request, obj)

    @admin.action(description="刷新排行榜")
    def refresh_leaderboard(self, request, queryset):
        for contest in queryset:
            LeaderboardService.mark_dirty(contest.pk)
        messages.success(request, f"已提交 {queryset.count()} 个比赛的排行榜刷新任务")

    @admin.action(description="恢复已删除的比赛")
    def restore_contests(self, request, queryset):
        restored = queryset.filter(deleted_at__isnull=False).update(deleted_at=None, updated_at=timezone.now())
        for contest in queryset:
            LeaderboardService.invalidate_cache(contest.pk)
        messages.success(request, f"已恢复 {restored} 个比赛")


@admin.register(ContestPoints)
class ContestPointsAdmin(admin.ModelAdmin):
    """比赛积分后台：只读，积分只能由计分服务写入"""

    list_display = ("contest", "user", "points", "solved_count", "rank", "last_successful_submission_at", "updated_at")
    list_filter = ("contest",)
    search_fields = ("user__username", "contest__slug")
    readonly_fields = ("contest", "user", "points", "solved_count", "rank", "last_successful_submission_at", "updated_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ProblemAward)
class ProblemAwardAdmin(admin.ModelAdmin):
    """题目计分记录后台：只读，用于审计每题的首次计分"""

    list_display = ("contest", "user", "problem", "points", "submission", "awarded_at")
    list_filter = ("contest",)
    search_fields = ("user__username", "problem__slug")
    readonly_fields = ("contest", "user", "problem", "points", "submission", "awarded_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
