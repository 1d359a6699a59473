from __future__ import annotations

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("contests", "0001_initial"),
        ("problems", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Submission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("language", models.CharField(max_length=16, verbose_name="语言")),
                ("source_code", models.TextField(verbose_name="源代码")),
                (
                    "token",
                    models.CharField(blank=True, max_length=64, null=True, unique=True, verbose_name="判题 token"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "排队中"),
                            ("running", "运行中"),
                            ("accepted", "通过"),
                            ("wrong_answer", "答案错误"),
                            ("time_limit_exceeded", "超出时间限制"),
                            ("memory_limit_exceeded", "超出内存限制"),
                            ("runtime_error", "运行错误"),
                            ("compile_error", "编译错误"),
                            ("internal_error", "判题内部错误"),
                        ],
                        default="queued",
                        max_length=32,
                        verbose_name="状态",
                    ),
                ),
                ("status_description", models.CharField(blank=True, default="", max_length=255, verbose_name="状态描述")),
                ("time", models.FloatField(blank=True, null=True, verbose_name="耗时（秒）")),
                ("memory", models.PositiveIntegerField(blank=True, null=True, verbose_name="内存（KB）")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="提交时间")),
                ("settled_at", models.DateTimeField(blank=True, null=True, verbose_name="判题完成时间")),
                (
                    "contest",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="submissions",
                        to="contests.contest",
                        verbose_name="所属比赛",
                    ),
                ),
                (
                    "problem",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="submissions",
                        to="problems.problem",
                        verbose_name="题目",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="submissions",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="用户",
                    ),
                ),
            ],
            options={
                "verbose_name": "代码提交",
                "verbose_name_plural": "代码提交",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["user", "created_at"], name="idx_submission_user"),
                    models.Index(fields=["contest", "problem", "user"], name="idx_submission_contest"),
                    models.Index(fields=["status"], name="idx_submission_status"),
                ],
            },
        ),
    ]
