from __future__ import annotations

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("problems", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Contest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="比赛名称")),
                ("slug", models.SlugField(max_length=200, unique=True, verbose_name="标识")),
                ("description", models.TextField(blank=True, verbose_name="比赛描述")),
                ("start_time", models.DateTimeField(verbose_name="开始时间")),
                ("end_time", models.DateTimeField(verbose_name="结束时间")),
                ("hidden", models.BooleanField(default=True, verbose_name="是否隐藏")),
                ("deleted_at", models.DateTimeField(blank=True, null=True, verbose_name="删除时间")),
                ("leaderboard_enabled", models.BooleanField(default=True, verbose_name="开放排行榜")),
                (
                    "scoring_mode",
                    models.CharField(
                        choices=[("fixed", "固定分值"), ("time_decay", "时间衰减")],
                        default="fixed",
                        help_text="时间衰减：越早通过得分越高，最低为基础分的一半",
                        max_length=20,
                        verbose_name="计分方式",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="创建时间")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="更新时间")),
            ],
            options={
                "verbose_name": "比赛",
                "verbose_name_plural": "比赛",
                "ordering": ["-start_time", "name"],
            },
        ),
        migrations.CreateModel(
            name="ContestProblem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("points", models.PositiveIntegerField(blank=True, help_text="留空则按题目难度计分", null=True, verbose_name="自定义分值")),
                ("order", models.PositiveIntegerField(default=0, verbose_name="顺序")),
                (
                    "contest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contest_problems",
                        to="contests.contest",
                        verbose_name="所属比赛",
                    ),
                ),
                (
                    "problem",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contest_links",
                        to="problems.problem",
                        verbose_name="题目",
                    ),
                ),
            ],
            options={
                "verbose_name": "比赛题目",
                "verbose_name_plural": "比赛题目",
                "ordering": ["contest_id", "order", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("contest", "problem"), name="uniq_contest_problem"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ContestPoints",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("points", models.PositiveIntegerField(default=0, verbose_name="累计积分")),
                ("solved_count", models.PositiveIntegerField(default=0, verbose_name="通过题数")),
                ("rank", models.PositiveIntegerField(blank=True, null=True, verbose_name="排名快照")),
                ("last_successful_submission_at", models.DateTimeField(blank=True, null=True, verbose_name="最近通过时间")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="更新时间")),
                (
                    "contest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="points_rows",
                        to="contests.contest",
                        verbose_name="所属比赛",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contest_points",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="选手",
                    ),
                ),
            ],
            options={
                "verbose_name": "比赛积分",
                "verbose_name_plural": "比赛积分",
                "constraints": [
                    models.UniqueConstraint(fields=("user", "contest"), name="uniq_contest_points_user"),
                ],
                "indexes": [
                    models.Index(
                        fields=["contest", "-points", "last_successful_submission_at", "user"],
                        name="idx_points_leaderboard",
                    ),
                ],
            },
        ),
    ]
