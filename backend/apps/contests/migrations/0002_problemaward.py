from __future__ import annotations

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("contests", "0001_initial"),
        ("problems", "0001_initial"),
        ("submissions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ProblemAward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("points", models.PositiveIntegerField(verbose_name="授予分值")),
                ("awarded_at", models.DateTimeField(verbose_name="授予时间")),
                (
                    "contest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="problem_awards",
                        to="contests.contest",
                        verbose_name="所属比赛",
                    ),
                ),
                (
                    "problem",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="awards",
                        to="problems.problem",
                        verbose_name="题目",
                    ),
                ),
                (
                    "submission",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="awards",
                        to="submissions.submission",
                        verbose_name="计分提交",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="problem_awards",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="选手",
                    ),
                ),
            ],
            options={
                "verbose_name": "题目计分记录",
                "verbose_name_plural": "题目计分记录",
                "ordering": ["awarded_at", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "contest", "problem"), name="uniq_problem_award"),
                ],
            },
        ),
    ]
