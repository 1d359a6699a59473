from __future__ import annotations

from django.db import models

# 模型文件：定义编程题目的元数据，不保存测试数据（测试数据由判题机侧管理）


class Problem(models.Model):
    """
    编程题目：
    - slug 作为对外标识，提交接口按 slug 引用题目
    - difficulty 决定比赛中的默认分值（比赛可以按题覆盖）
    """

    class Difficulty(models.TextChoices):
        EASY = "easy", "Easy"
        MEDIUM = "medium", "Medium"
        HARD = "hard", "Hard"

    #: 难度 → 默认分值
    DIFFICULTY_POINTS = {
        Difficulty.EASY: 250,
        Difficulty.MEDIUM: 500,
        Difficulty.HARD: 1000,
    }

    # 题目标题
    title = models.CharField("题目标题", max_length=200, help_text="展示给选手的题目名称")
    # 题目标识 slug
    slug = models.SlugField("题目标识", max_length=200, unique=True, help_text="题目唯一标识，提交接口使用")
    # 难度
    difficulty = models.CharField(
        "难度",
        max_length=10,
        choices=Difficulty.choices,
        default=Difficulty.EASY,
        help_text="难度决定比赛中的默认分值",
    )
    # 是否启用，停用后不可提交
    is_active = models.BooleanField("是否启用", default=True)
    # 记录创建时间
    created_at = models.DateTimeField("创建时间", auto_now_add=True)

    class Meta:
        ordering = ["id"]
        verbose_name = "题目"
        verbose_name_plural = "题目"

    def __str__(self) -> str:
        return self.title

    @property
    def default_points(self) -> int:
        """按难度映射的默认分值，未知难度按最低档处理"""
        return self.DIFFICULTY_POINTS.get(self.difficulty, self.DIFFICULTY_POINTS[self.Difficulty.EASY])
