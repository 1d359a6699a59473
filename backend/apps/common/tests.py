# -*- coding: utf-8 -*-
"""
公共模块单测：
- 全局异常处理器的错误映射
- 判题机客户端的有限重试
- 页面缓存失效通知
- Service 基类的数据库瞬时故障重试
- Redis 不可用时的软降级
"""

from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from unittest import mock

import redis
import requests
from django.db import OperationalError
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.exceptions import NotAuthenticated, Throttled, ValidationError as DRFValidationError

from apps.common.base.base_schema import BaseSchema
from apps.common.base.base_service import BaseService
from apps.common.exception_handler import custom_exception_handler
from apps.common.exceptions import (
    JudgeUnavailableError,
    SubmissionError,
    TransientStoreError,
    UnknownTokenError,
    ValidationError,
)
from apps.common.infra import redis_client
from apps.common.infra.judge0_client import Judge0Client
from apps.common.infra.logger import logger_extra, mask_token
from apps.common.infra.revalidation import contest_paths, notify_paths_changed
from apps.common.security import secrets_match
from apps.common.ws_utils import broadcast_contest


def _resp(status_code: int, payload=None):
    resp = mock.Mock(status_code=status_code, text="")
    resp.json.return_value = payload
    return resp


class ExceptionHandlerTests(SimpleTestCase):
    """异常 → 统一响应结构"""

    def test_biz_error_keeps_code_and_status(self):
        resp = custom_exception_handler(UnknownTokenError(), {})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], 48202)

    def test_db_errors_become_retryable_503(self):
        resp = custom_exception_handler(OperationalError("connection reset"), {})
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.data["code"], TransientStoreError.default_code)

    def test_drf_errors_are_mapped(self):
        resp = custom_exception_handler(DRFValidationError({"limit": ["必须是整数"]}), {})
        self.assertEqual((resp.status_code, resp.data["code"], resp.data["message"]), (400, 40002, "必须是整数"))
        self.assertEqual(custom_exception_handler(NotAuthenticated(), {}).status_code, 401)
        throttled = custom_exception_handler(Throttled(wait=12), {})
        self.assertEqual((throttled.status_code, throttled.data["code"]), (429, 42900))

    def test_unexpected_error_is_500(self):
        resp = custom_exception_handler(RuntimeError("boom"), {})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.data["code"], 50000)
        self.assertNotIn("boom", resp.data["message"])


class Judge0ClientTests(SimpleTestCase):
    """判题机客户端：5xx / 连接失败有限重试，4xx 不重试"""

    def _client(self, session, **kwargs):
        defaults = dict(
            base_url="http://judge0.test/",
            callback_url="http://backend.test/cb/",
            auth_token="judge-token",
            max_retries=3,
            backoff_seconds=0,
            session=session,
        )
        defaults.update(kwargs)
        return Judge0Client(**defaults)

    def test_submit_sends_callback_and_returns_token(self):
        session = mock.Mock()
        session.post.return_value = _resp(201, {"token": "abc-123"})
        result = self._client(session).submit(source_code="print(1)", language_id=71)
        self.assertEqual(result.token, "abc-123")
        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "http://judge0.test/submissions")
        self.assertEqual(kwargs["params"], {"base64_encoded": "false", "wait": "false"})
        self.assertEqual(kwargs["json"]["callback_url"], "http://backend.test/cb/")
        self.assertEqual(kwargs["headers"]["X-Auth-Token"], "judge-token")

    def test_retries_5xx_then_succeeds(self):
        session = mock.Mock()
        session.post.side_effect = [_resp(503), _resp(502), _resp(201, {"token": "late"})]
        self.assertEqual(self._client(session).submit(source_code="x", language_id=54).token, "late")
        self.assertEqual(session.post.call_count, 3)

    def test_gives_up_after_bounded_retries(self):
        session = mock.Mock()
        session.post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(JudgeUnavailableError):
            self._client(session).submit(source_code="x", language_id=54)
        self.assertEqual(session.post.call_count, 3)

    def test_client_error_is_not_retried(self):
        session = mock.Mock()
        session.post.return_value = _resp(422, {"language_id": ["invalid"]})
        with self.assertRaises(SubmissionError):
            self._client(session).submit(source_code="x", language_id=999)
        self.assertEqual(session.post.call_count, 1)

    def test_missing_token_is_unavailable(self):
        session = mock.Mock()
        session.post.return_value = _resp(201, {})
        with self.assertRaises(JudgeUnavailableError):
            self._client(session).submit(source_code="x", language_id=54)

    def test_missing_url_is_unavailable(self):
        with self.assertRaises(JudgeUnavailableError):
            self._client(mock.Mock(), base_url="").submit(source_code="x", language_id=54)


class RevalidationTests(SimpleTestCase):
    """页面缓存失效通知：尽力而为，失败不抛出"""

    def test_disabled_without_url(self):
        with mock.patch("apps.common.infra.revalidation.requests.post") as post:
            self.assertEqual(notify_paths_changed(["/contests/a"]), [])
        post.assert_not_called()

    @override_settings(REVALIDATE_URL="http://web.test/api/revalidate", REVALIDATE_SECRET="s3cret")
    def test_failures_are_logged_not_raised(self):
        paths = contest_paths("spring")
        with mock.patch("apps.common.infra.revalidation.requests.post") as post:
            post.side_effect = [requests.Timeout("slow"), _resp(200)]
            notified = notify_paths_changed(paths)
        self.assertEqual(notified, ["/contests/spring/leaderboard"])
        first_call = post.call_args_list[0]
        self.assertEqual(first_call.kwargs["json"], {"path": "/contests/spring"})
        self.assertEqual(first_call.kwargs["headers"], {"x-revalidate-secret": "s3cret"})

    @override_settings(REVALIDATE_URL="http://web.test/api/revalidate")
    def test_rejected_path_is_skipped(self):
        with mock.patch("apps.common.infra.revalidation.requests.post", return_value=_resp(401)):
            self.assertEqual(notify_paths_changed(["/contests/a"]), [])


class _FlakyService(BaseService[str]):
    atomic_enabled = False
    store_retries = None

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    def perform(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError("server closed the connection unexpectedly")
        return "ok"


@override_settings(STORE_MAX_RETRIES=2, STORE_BACKOFF_SECONDS=0)
class StoreRetryTests(SimpleTestCase):
    """数据库瞬时故障：事务外有限重试，耗尽抛 TransientStoreError"""

    def _outside_transaction(self):
        connection = mock.Mock(in_atomic_block=False)
        return mock.patch("apps.common.base.base_service.transaction.get_connection", return_value=connection)

    def test_recovers_within_budget(self):
        service = _FlakyService(failures=2)
        with self._outside_transaction():
            self.assertEqual(service.execute(), "ok")
        self.assertEqual(service.calls, 3)

    def test_exhausted_budget_raises_transient_error(self):
        service = _FlakyService(failures=5)
        with self._outside_transaction(), self.assertRaises(TransientStoreError):
            service.execute()
        self.assertEqual(service.calls, 3)

    def test_inside_outer_transaction_error_propagates(self):
        service = _FlakyService(failures=1)
        connection = mock.Mock(in_atomic_block=True)
        with mock.patch("apps.common.base.base_service.transaction.get_connection", return_value=connection):
            with self.assertRaises(OperationalError):
                service.execute()
        self.assertEqual(service.calls, 1)


@dataclass
class _PairSchema(BaseSchema):
    left: int
    right: int = 0

    def validate(self) -> None:
        if self.left < 0:
            raise ValidationError(message="left 不能为负")


class BaseSchemaTests(SimpleTestCase):
    def test_from_dict(self):
        schema = _PairSchema.from_dict({"left": 1, "unknown": "ignored"}, auto_validate=True)
        self.assertEqual(schema.to_dict(), {"left": 1, "right": 0})
        with self.assertRaises(ValidationError):
            _PairSchema.from_dict("not-a-dict")
        with self.assertRaises(ValidationError):
            _PairSchema.from_dict({"right": 1})
        with self.assertRaises(ValidationError):
            _PairSchema.from_dict({"left": -1}, auto_validate=True)


@override_settings(REDIS_ENABLED=True)
class RedisSoftDegradeTests(SimpleTestCase):
    """Redis 故障只记日志并返回空值"""

    def test_errors_return_empty(self):
        broken = mock.Mock()
        broken.get.side_effect = redis.ConnectionError("down")
        broken.incrby.side_effect = redis.ConnectionError("down")
        broken.set.side_effect = redis.TimeoutError("slow")
        with mock.patch("apps.common.infra.redis_client._get_client", return_value=broken):
            self.assertIsNone(redis_client.get("k"))
            self.assertIsNone(redis_client.incr("k"))
            self.assertFalse(redis_client.set_json("k", {"a": 1}))

    def test_disabled_client_is_noop(self):
        with self.settings(REDIS_ENABLED=False):
            self.assertIsNone(redis_client._get_client())
            self.assertIsNone(redis_client.get("k"))


class SecurityHelperTests(SimpleTestCase):
    def test_secrets_match(self):
        self.assertTrue(secrets_match("same-secret", "same-secret"))
        self.assertFalse(secrets_match("other", "same-secret"))
        self.assertFalse(secrets_match("", ""))
        self.assertFalse(secrets_match(None, "same-secret"))

    def test_logger_extra_masks_sensitive_keys(self):
        extra = logger_extra({"token": "abc", "source_code": "int main", "submission_id": 3})
        self.assertEqual(extra, {"token": "***", "source_code": "***", "submission_id": 3})
        self.assertEqual(mask_token("0123456789abcdef"), "01234567…")
        self.assertEqual(mask_token(None), "-")


class RequestContextAndHealthTests(TestCase):
    def test_health_and_request_id_header(self):
        resp = self.client.get("/health/", HTTP_X_REQUEST_ID="req-42")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["database"], "ok")
        self.assertEqual(resp.json()["data"]["cache"], "disabled")
        self.assertEqual(resp["X-Request-ID"], "req-42")


class ContestBroadcastTests(SimpleTestCase):
    """WebSocket 广播：seq 按比赛递增，发送失败不抛出"""

    def test_seq_increases_within_contest(self):
        layer = mock.Mock()
        layer.group_send = mock.AsyncMock()
        contest = SimpleNamespace(id=7001, slug="spring")
        with mock.patch("apps.common.ws_utils.get_channel_layer", return_value=layer):
            broadcast_contest(contest, {"event": "leaderboard_updated"})
            broadcast_contest(contest, {"event": "leaderboard_snapshot"})
        (group, first), (_, second) = [call.args for call in layer.group_send.await_args_list]
        self.assertEqual(group, "contest_spring")
        self.assertEqual(first["type"], "broadcast")
        self.assertEqual(second["seq"], first["seq"] + 1)

    def test_send_failure_is_swallowed(self):
        layer = mock.Mock()
        layer.group_send = mock.AsyncMock(side_effect=RuntimeError("layer down"))
        with mock.patch("apps.common.ws_utils.get_channel_layer", return_value=layer):
            broadcast_contest(SimpleNamespace(id=7002, slug="autumn"), {"event": "leaderboard_updated"})
        layer.group_send.assert_awaited_once()
