from __future__ import annotations

import threading
from datetime import timedelta
from typing import Any, Callable, Optional
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import connection
from django.utils import timezone
from rest_framework.test import APIClient

from apps.common.security import CALLBACK_SECRET_HEADER
from apps.contests.models import Contest, ContestProblem
from apps.problems.models import Problem
from apps.submissions.models import Submission

#: 回调密钥请求头在 WSGI environ 中的键名
CALLBACK_SECRET_META = "HTTP_" + CALLBACK_SECRET_HEADER.upper().replace("-", "_")


def make_user(username: str, **extra):
    return get_user_model().objects.create_user(
        username=username, email=extra.pop("email", f"{username}@example.com"), password="Pass1234", **extra
    )


def make_problem(slug: str, difficulty: str = Problem.Difficulty.EASY, **extra) -> Problem:
    return Problem.objects.create(title=extra.pop("title", slug.title()), slug=slug, difficulty=difficulty, **extra)


def make_contest(slug: str, *, hours_before: float = 1, hours_after: float = 4, **extra) -> Contest:
    """默认构造一场公开、进行中的比赛"""
    now = timezone.now()
    extra.setdefault("hidden", False)
    return Contest.objects.create(
        name=extra.pop("name", slug),
        slug=slug,
        start_time=extra.pop("start_time", now - timedelta(hours=hours_before)),
        end_time=extra.pop("end_time", now + timedelta(hours=hours_after)),
        **extra,
    )


def attach(contest: Contest, problem: Problem, points: Optional[int] = None, order: int = 0) -> ContestProblem:
    return ContestProblem.objects.create(contest=contest, problem=problem, points=points, order=order)


def make_submission(user, problem: Problem, *, contest: Optional[Contest] = None, token: str, **extra) -> Submission:
    """直接落库一条已派发（queued）的提交，绕过判题机"""
    return Submission.objects.create(
        user=user,
        problem=problem,
        contest=contest,
        language=extra.pop("language", "cpp"),
        source_code=extra.pop("source_code", "int main() { return 0; }"),
        token=token,
        **extra,
    )


def callback_payload(token: str, status_id: int = 3, description: str = "Accepted", **extra) -> dict:
    payload: dict[str, Any] = {"token": token, "status": {"id": status_id, "description": description}}
    payload.update(extra)
    return payload


def run_concurrently(count: int, target: Callable[[int], Any]) -> tuple[list, list[BaseException]]:
    """
    开 count 个线程同时执行 target(index)，返回 (结果列表, 异常列表)

    线程在 Barrier 处对齐后再开始，各自使用独立的数据库连接，结束时关闭
    需要配合 TransactionTestCase 使用，否则其它线程看不到测试数据
    """
    barrier = threading.Barrier(count)
    lock = threading.Lock()
    results: list = []
    errors: list[BaseException] = []

    def worker(index: int) -> None:
        try:
            barrier.wait()
            value = target(index)
            with lock:
                results.append(value)
        except BaseException as exc:
            with lock:
                errors.append(exc)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results, errors


class FakeRedis:
    """
    内存版 Redis，只实现 redis_client 用到的命令

    用法：
        with mock.patch("apps.common.infra.redis_client._get_client", return_value=FakeRedis()):
            ...
    """

    def __init__(self):
        self.store: dict[str, Any] = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    def incrby(self, key, amount=1):
        self.store[key] = int(self.store.get(key) or 0) + amount
        return self.store[key]

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)


def patch_redis(fake: Optional[FakeRedis] = None):
    return mock.patch("apps.common.infra.redis_client._get_client", return_value=fake or FakeRedis())


class JudgeCallbackClientMixin:
    """
    判题回调测试工具：构造带共享密钥的回调请求
    """

    callback_url: str = "/api/submissions/callback/"
    client: APIClient  # 由 APITestCase 提供

    def post_callback(self, payload: Any, *, secret: Optional[str] = "test-callback-secret-0123456789", method: str = "put"):
        meta = {CALLBACK_SECRET_META: secret} if secret is not None else {}
        sender = getattr(self.client, method)
        return sender(self.callback_url, payload, format="json", **meta)
