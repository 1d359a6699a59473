from __future__ import annotations

from django.conf import settings
from django.db import models

# 模型定义：代码提交记录与判题结果（判题由外部判题机异步完成）

User = settings.AUTH_USER_MODEL


class Submission(models.Model):
    """
    代码提交记录：
    - 关联提交人、题目以及可选的比赛（无比赛即练习提交）
    - token 由判题机在受理时返回，回调按 token 找到提交；一经写入不再变化
    - status 只会向前推进，进入终态后不再变化；settled_at 在首次进入终态时写入
    - 提交记录永不删除，作为计分的审计依据
    """

    class Status(models.TextChoices):
        """判题状态：排队/运行中为非终态，其余为终态"""
        QUEUED = "queued", "排队中"
        RUNNING = "running", "运行中"
        ACCEPTED = "accepted", "通过"
        WRONG_ANSWER = "wrong_answer", "答案错误"
        TIME_LIMIT_EXCEEDED = "time_limit_exceeded", "超出时间限制"
        MEMORY_LIMIT_EXCEEDED = "memory_limit_exceeded", "超出内存限制"
        RUNTIME_ERROR = "runtime_error", "运行错误"
        COMPILE_ERROR = "compile_error", "编译错误"
        INTERNAL_ERROR = "internal_error", "判题内部错误"

    # 提交人
    user = models.ForeignKey(User, verbose_name="用户", related_name="submissions", on_delete=models.CASCADE)
    # 所属比赛（练习提交为空）
    contest = models.ForeignKey("contests.Contest", verbose_name="所属比赛", related_name="submissions",
                                on_delete=models.CASCADE, null=True, blank=True)
    # 题目
    problem = models.ForeignKey("problems.Problem", verbose_name="题目", related_name="submissions",
                                on_delete=models.CASCADE)
    # 语言内部标识（见 languages.LANGUAGES）
    language = models.CharField("语言", max_length=16)
    # 源代码
    source_code = models.TextField("源代码")
    # 判题机 token
    token = models.CharField("判题 token", max_length=64, unique=True, null=True, blank=True)
    # 判题状态
    status = models.CharField("状态", max_length=32, choices=Status.choices, default=Status.QUEUED)
    # 判题机返回的原始状态描述
    status_description = models.CharField("状态描述", max_length=255, blank=True, default="")
    # 运行耗时（秒）
    time = models.FloatField("耗时（秒）", null=True, blank=True)
    # 内存占用（KB）
    memory = models.PositiveIntegerField("内存（KB）", null=True, blank=True)
    # 提交时间，时间衰减计分以此为准
    created_at = models.DateTimeField("提交时间", auto_now_add=True)
    # 首次进入终态的时间
    settled_at = models.DateTimeField("判题完成时间", null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="idx_submission_user"),
            models.Index(fields=["contest", "problem", "user"], name="idx_submission_contest"),
            models.Index(fields=["status"], name="idx_submission_status"),
        ]
        verbose_name = "代码提交"
        verbose_name_plural = "代码提交"

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.problem_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        from .verdicts import is_terminal

        return is_terminal(self.status)
