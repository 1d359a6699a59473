from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

# 模型文件：负责比赛、比赛题目、选手积分与计分标记的数据结构定义，不承载业务流程

User = settings.AUTH_USER_MODEL


class Contest(models.Model):
    """
    比赛模型：
    - 覆盖比赛的核心信息（名称、时间、可见性、计分方式）
    - 提供比赛状态辅助属性，用于服务层校验比赛是否可提交/可展示排行榜
    """

    class ScoringMode(models.TextChoices):
        """计分方式：固定分值 / 按剩余时间衰减"""
        FIXED = "fixed", "固定分值"
        TIME_DECAY = "time_decay", "时间衰减"

    # 比赛名称
    name = models.CharField("比赛名称", max_length=200)
    # 唯一标识，供路由与接口访问
    slug = models.SlugField("标识", max_length=200, unique=True)
    # 比赛描述
    description = models.TextField("比赛描述", blank=True)
    # 开赛时间
    start_time = models.DateTimeField("开始时间")
    # 结束时间
    end_time = models.DateTimeField("结束时间")
    # 隐藏的比赛对外不可见（排行榜、提交均不可用）
    hidden = models.BooleanField("是否隐藏", default=True)
    # 软删除时间，非空即视为已删除
    deleted_at = models.DateTimeField("删除时间", null=True, blank=True)
    # 是否开放排行榜
    leaderboard_enabled = models.BooleanField("开放排行榜", default=True)
    # 计分方式
    scoring_mode = models.CharField(
        "计分方式",
        max_length=20,
        choices=ScoringMode.choices,
        default=ScoringMode.FIXED,
        help_text="时间衰减：越早通过得分越高，最低为基础分的一半",
    )
    # 记录创建时间
    created_at = models.DateTimeField("创建时间", auto_now_add=True)
    # 记录更新时间
    updated_at = models.DateTimeField("更新时间", auto_now=True)

    class Meta:
        ordering = ["-start_time", "name"]
        verbose_name = "比赛"
        verbose_name_plural = "比赛"

    def __str__(self) -> str:
        return self.name

    @property
    def is_visible(self) -> bool:
        """未隐藏且未软删除"""
        return not self.hidden and self.deleted_at is None

    @property
    def has_started(self) -> bool:
        return timezone.now() >= self.start_time

    @property
    def has_ended(self) -> bool:
        return timezone.now() >= self.end_time

    @property
    def is_active(self) -> bool:
        """比赛进行中"""
        return self.has_started and not self.has_ended


class ContestProblem(models.Model):
    """
    比赛题目：
    - 题目只有挂到比赛上才能在比赛内提交
    - points 为空时按题目难度取默认分值
    """

    # 所属比赛
    contest = models.ForeignKey(
        Contest,
        verbose_name="所属比赛",
        related_name="contest_problems",
        on_delete=models.CASCADE,
    )
    # 题目
    problem = models.ForeignKey(
        "problems.Problem",
        verbose_name="题目",
        related_name="contest_links",
        on_delete=models.CASCADE,
    )
    # 自定义分值，覆盖难度默认分值
    points = models.PositiveIntegerField("自定义分值", null=True, blank=True, help_text="留空则按题目难度计分")
    # 展示顺序
    order = models.PositiveIntegerField("顺序", default=0)

    class Meta:
        ordering = ["contest_id", "order", "id"]
        verbose_name = "比赛题目"
        verbose_name_plural = "比赛题目"
        constraints = [
            models.UniqueConstraint(fields=["contest", "problem"], name="uniq_contest_problem"),
        ]

    def __str__(self) -> str:
        return f"{self.contest_id}:{self.problem_id}"

    @property
    def base_points(self) -> int:
        if self.points is not None:
            return self.points
        return self.problem.default_points


class ContestPoints(models.Model):
    """
    选手比赛积分汇总：
    - 每个 (user, contest) 一行，首次通过时惰性创建
    - points / solved_count / last_successful_submission_at 只由计分服务原子递增
    - rank 是后台任务写入的排名快照，不作为排序依据
    """

    # 选手
    user = models.ForeignKey(
        User,
        verbose_name="选手",
        related_name="contest_points",
        on_delete=models.CASCADE,
    )
    # 所属比赛
    contest = models.ForeignKey(
        Contest,
        verbose_name="所属比赛",
        related_name="points_rows",
        on_delete=models.CASCADE,
    )
    # 累计积分
    points = models.PositiveIntegerField("累计积分", default=0)
    # 已通过的不同题目数量
    solved_count = models.PositiveIntegerField("通过题数", default=0)
    # 排名快照（由排行榜刷新任务写入）
    rank = models.PositiveIntegerField("排名快照", null=True, blank=True)
    # 最近一次计分通过的时间，积分相同时越早越靠前
    last_successful_submission_at = models.DateTimeField("最近通过时间", null=True, blank=True)
    # 记录更新时间
    updated_at = models.DateTimeField("更新时间", auto_now=True)

    class Meta:
        verbose_name = "比赛积分"
        verbose_name_plural = "比赛积分"
        constraints = [
            models.UniqueConstraint(fields=["user", "contest"], name="uniq_contest_points_user"),
        ]
        indexes = [
            models.Index(
                fields=["contest", "-points", "last_successful_submission_at", "user"],
                name="idx_points_leaderboard",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.contest_id}:{self.user_id}={self.points}"


class ProblemAward(models.Model):
    """
    题目计分标记：
    - 每个 (user, contest, problem) 至多一行，唯一约束保证同一题只计分一次
    - 与 ContestPoints 的递增在同一事务中提交
    """

    # 选手
    user = models.ForeignKey(
        User,
        verbose_name="选手",
        related_name="problem_awards",
        on_delete=models.CASCADE,
    )
    # 所属比赛
    contest = models.ForeignKey(
        Contest,
        verbose_name="所属比赛",
        related_name="problem_awards",
        on_delete=models.CASCADE,
    )
    # 题目
    problem = models.ForeignKey(
        "problems.Problem",
        verbose_name="题目",
        related_name="awards",
        on_delete=models.CASCADE,
    )
    # 首个计分的提交
    submission = models.ForeignKey(
        "submissions.Submission",
        verbose_name="计分提交",
        related_name="awards",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    # 授予的分值
    points = models.PositiveIntegerField("授予分值")
    # 授予时间
    awarded_at = models.DateTimeField("授予时间")

    class Meta:
        ordering = ["awarded_at", "id"]
        verbose_name = "题目计分记录"
        verbose_name_plural = "题目计分记录"
        constraints = [
            models.UniqueConstraint(fields=["user", "contest", "problem"], name="uniq_problem_award"),
        ]

    def __str__(self) -> str:
        return f"{self.contest_id}:{self.user_id}:{self.problem_id}"
