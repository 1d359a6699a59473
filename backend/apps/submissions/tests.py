from __future__ import annotations

from datetime import timedelta
from unittest import mock

from django.db import OperationalError
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.common.exceptions import (
    ContestNotStartedError,
    JudgeUnavailableError,
    MalformedCallbackError,
    ProblemNotInContestError,
    SourceTooLargeError,
    UnsupportedLanguageError,
    ValidationError,
)
from apps.common.infra.judge0_client import Judge0Submission
from apps.common.throttles import SubmissionRateThrottle
from apps.common.tests_utils import (
    JudgeCallbackClientMixin,
    attach,
    callback_payload,
    make_contest,
    make_problem,
    make_submission,
    make_user,
    run_concurrently,
)
from apps.contests.models import Contest, ContestPoints, ProblemAward

from .languages import LANGUAGES, get_language
from .models import Submission
from .schemas import MAX_MEMORY_KB, JudgeCallbackSchema, Measurement, SubmissionCreateSchema
from .services import JudgeCallbackService, SubmissionDispatchService, VerdictService, serialize_submission
from .verdicts import Outcome, can_advance, public_status, resolve_status

Status = Submission.Status


# 测试用例：语言注册表、状态映射、回调载荷解析、判题派发与回调幂等


class LanguageRegistryTests(SimpleTestCase):
    def test_known_languages(self):
        self.assertEqual(get_language("cpp").judge0_id, 54)
        self.assertEqual(get_language(" JS ").judge0_id, 63)
        self.assertEqual(get_language("rs").name, "Rust")
        self.assertEqual(get_language("py").judge0_id, 71)

    def test_unknown_language(self):
        with self.assertRaises(UnsupportedLanguageError) as ctx:
            get_language("cobol")
        self.assertEqual(ctx.exception.extra["supported"], sorted(LANGUAGES))

    def test_registry_is_read_only(self):
        with self.assertRaises(TypeError):
            LANGUAGES["go"] = LANGUAGES["cpp"]  # type: ignore[index]


class VerdictMappingTests(SimpleTestCase):
    def test_table(self):
        expected = {
            1: Status.QUEUED,
            2: Status.RUNNING,
            3: Status.ACCEPTED,
            4: Status.WRONG_ANSWER,
            5: Status.TIME_LIMIT_EXCEEDED,
            6: Status.COMPILE_ERROR,
            13: Status.INTERNAL_ERROR,
            14: Status.RUNTIME_ERROR,
        }
        for judge_id, status in expected.items():
            self.assertEqual(resolve_status(judge_id), status)
        for judge_id in range(7, 13):
            self.assertEqual(resolve_status(judge_id), Status.RUNTIME_ERROR)

    def test_unknown_id_is_internal_error(self):
        self.assertEqual(resolve_status(99), Status.INTERNAL_ERROR)
        self.assertEqual(resolve_status(-1), Status.INTERNAL_ERROR)

    def test_memory_limit_description(self):
        self.assertEqual(resolve_status(11, "Memory Limit Exceeded"), Status.MEMORY_LIMIT_EXCEEDED)
        self.assertEqual(resolve_status(3, "memory limit fine"), Status.ACCEPTED)
        self.assertEqual(resolve_status(2, "memory limit"), Status.RUNNING)

    def test_forward_only(self):
        self.assertTrue(can_advance(Status.QUEUED, Status.RUNNING))
        self.assertTrue(can_advance(Status.RUNNING, Status.ACCEPTED))
        self.assertFalse(can_advance(Status.RUNNING, Status.QUEUED))
        self.assertFalse(can_advance(Status.QUEUED, Status.QUEUED))
        self.assertFalse(can_advance(Status.ACCEPTED, Status.WRONG_ANSWER))

    def test_public_status(self):
        self.assertEqual(public_status(Status.QUEUED), "pending")
        self.assertEqual(public_status(Status.RUNNING), "pending")
        self.assertEqual(public_status(Status.WRONG_ANSWER), "wrong_answer")


class PayloadSchemaTests(SimpleTestCase):
    def test_measurement_parsing(self):
        self.assertEqual(Measurement.parse("0.012"), Measurement.known(0.012))
        self.assertEqual(Measurement.parse(3).value, 3.0)
        self.assertFalse(Measurement.parse(None).is_known)
        self.assertFalse(Measurement.parse("n/a").is_known)
        self.assertFalse(Measurement.parse("").is_known)
        self.assertFalse(Measurement.parse(-1).is_known)
        self.assertFalse(Measurement.parse(True).is_known)
        self.assertFalse(Measurement.parse({"v": 1}).is_known)
        self.assertEqual(Measurement.parse("n/a").raw, "n/a")

    def test_out_of_range_measurements_are_unknown(self):
        self.assertFalse(Measurement.parse(10 ** 400).is_known)
        self.assertFalse(Measurement.parse("1e400").is_known)
        payload = JudgeCallbackSchema.from_dict(callback_payload("tok", memory="1e20"), auto_validate=True)
        self.assertFalse(payload.memory_measurement.is_known)
        payload = JudgeCallbackSchema.from_dict(callback_payload("tok", memory=MAX_MEMORY_KB), auto_validate=True)
        self.assertEqual(payload.memory_measurement.value_or_none(), MAX_MEMORY_KB)

    def test_whole_float_status_id(self):
        payload = JudgeCallbackSchema.from_dict({"token": "tok", "status": {"id": 3.0}}, auto_validate=True)
        self.assertEqual(payload.status_id, 3)
        self.assertIsInstance(payload.status_id, int)
        self.assertEqual(resolve_status(payload.status_id), Status.ACCEPTED)

    def test_callback_schema(self):
        payload = JudgeCallbackSchema.from_dict(
            callback_payload("tok", 4, "Wrong Answer", time="0.5", memory="1024.4", stdout="ignored"),
            auto_validate=True,
        )
        self.assertEqual(payload.status_id, 4)
        self.assertEqual(payload.status_description, "Wrong Answer")
        self.assertEqual(payload.time_measurement.value_or_none(), 0.5)
        self.assertEqual(payload.memory_measurement.value_or_none(), 1024)

    def test_malformed_callbacks(self):
        bad_payloads = [
            [],
            {"status": {"id": 3}},
            {"token": "", "status": {"id": 3}},
            {"token": "tok"},
            {"token": "tok", "status": "accepted"},
            {"token": "tok", "status": {"id": "3"}},
            {"token": "tok", "status": {"id": True}},
            {"token": "tok", "status": {"id": 3.5}},
            {"token": "tok", "status": {"id": float("nan")}},
            {"token": "tok", "status": {"id": 3, "description": 5}},
        ]
        for raw in bad_payloads:
            with self.subTest(raw=raw), self.assertRaises(MalformedCallbackError):
                JudgeCallbackSchema.from_dict(raw, auto_validate=True)

    def test_create_schema_aliases_and_limits(self):
        schema = SubmissionCreateSchema.from_dict(
            {"problemSlug": "two-sum", "languageId": "CPP", "sourceCode": "int main(){}", "contestSlug": ""}
        )
        self.assertEqual((schema.problem, schema.language, schema.contest), ("two-sum", "cpp", None))
        with self.assertRaises(ValidationError):
            SubmissionCreateSchema.from_dict({"problem": "two-sum", "language": "cpp", "source_code": "   "})
        with self.assertRaises(SourceTooLargeError):
            SubmissionCreateSchema.from_dict({"problem": "two-sum", "language": "cpp", "source_code": "x" * (64 * 1024 + 1)})
        with self.assertRaises(ValidationError):
            SubmissionCreateSchema.from_dict({"problem": "two-sum"})


class DispatchServiceTests(TestCase):
    """判题派发：先校验语言/题目/比赛，再调用判题机，最后落库"""

    def setUp(self) -> None:
        self.user = make_user("alice")
        self.problem = make_problem("two-sum")
        self.contest = make_contest("round-1")
        attach(self.contest, self.problem)
        self.judge = mock.Mock()
        self.judge.submit.return_value = Judge0Submission(token="tok-123")
        self.service = SubmissionDispatchService(judge_client=self.judge)

    def _schema(self, **overrides):
        data = {"problem": "two-sum", "language": "cpp", "source_code": "int main(){}", "contest": "round-1"}
        data.update(overrides)
        return SubmissionCreateSchema.from_dict(data)

    def test_dispatch_persists_queued_submission(self):
        submission = self.service.dispatch(self.user, self._schema())
        self.judge.submit.assert_called_once_with(source_code="int main(){}", language_id=54)
        self.assertEqual(submission.token, "tok-123")
        self.assertEqual(submission.status, Status.QUEUED)
        self.assertEqual(submission.contest, self.contest)
        self.assertEqual(serialize_submission(submission)["status"], "pending")

    def test_practice_submission_without_contest(self):
        submission = self.service.dispatch(self.user, self._schema(contest=None))
        self.assertIsNone(submission.contest_id)

    def test_unsupported_language_never_calls_judge(self):
        with self.assertRaises(UnsupportedLanguageError):
            self.service.dispatch(self.user, self._schema(language="brainfuck"))
        self.judge.submit.assert_not_called()
        self.assertFalse(Submission.objects.exists())

    def test_judge_unavailable_persists_nothing(self):
        self.judge.submit.side_effect = JudgeUnavailableError()
        with self.assertRaises(JudgeUnavailableError):
            self.service.dispatch(self.user, self._schema())
        self.assertFalse(Submission.objects.exists())

    def test_contest_rules_checked_before_dispatch(self):
        make_contest("later", hours_before=-2, hours_after=5)
        attach(Contest.objects.get(slug="later"), self.problem)
        with self.assertRaises(ContestNotStartedError):
            self.service.dispatch(self.user, self._schema(contest="later"))

        make_problem("other")
        with self.assertRaises(ProblemNotInContestError):
            self.service.dispatch(self.user, self._schema(problem="other"))
        self.judge.submit.assert_not_called()


class VerdictServiceTests(TestCase):
    """状态机：终态不可变，非终态只前进"""

    def setUp(self) -> None:
        self.submission = make_submission(make_user("alice"), make_problem("two-sum"), token="tok-v")

    def test_forward_then_terminal(self):
        service = VerdictService()
        submission, outcome = service.transition(self.submission, Status.RUNNING)
        self.assertEqual((submission.status, outcome), (Status.RUNNING, Outcome.APPLIED))
        self.assertIsNone(submission.settled_at)

        submission, outcome = service.transition(submission, Status.QUEUED)
        self.assertEqual((submission.status, outcome), (Status.RUNNING, Outcome.STALE))

        submission, outcome = service.transition(submission, Status.WRONG_ANSWER, time=Measurement.known(0.2))
        self.assertEqual(outcome, Outcome.APPLIED)
        self.assertIsNotNone(submission.settled_at)
        self.assertEqual(submission.time, 0.2)

    def test_terminal_is_final(self):
        service = VerdictService()
        submission, _ = service.transition(self.submission, Status.ACCEPTED)
        settled_at = submission.settled_at
        for target in (Status.WRONG_ANSWER, Status.ACCEPTED, Status.RUNNING, Status.QUEUED):
            submission, outcome = service.transition(submission, target)
            self.assertEqual(outcome, Outcome.ALREADY_TERMINAL)
            self.assertEqual(submission.status, Status.ACCEPTED)
            self.assertEqual(submission.settled_at, settled_at)

    def test_stale_instance_cannot_overwrite(self):
        """持有过期内存对象的并发请求也只能拿到 already_terminal"""
        stale = Submission.objects.get(pk=self.submission.pk)
        VerdictService().transition(self.submission, Status.ACCEPTED)
        submission, outcome = VerdictService().transition(stale, Status.WRONG_ANSWER)
        self.assertEqual(outcome, Outcome.ALREADY_TERMINAL)
        self.assertEqual(submission.status, Status.ACCEPTED)


class JudgeCallbackAPITests(JudgeCallbackClientMixin, APITestCase):
    """判题回调端到端：鉴权、载荷校验、幂等计分"""

    def setUp(self) -> None:
        self.user = make_user("alice")
        self.problem = make_problem("two-sum")
        self.contest = make_contest("round-1")
        attach(self.contest, self.problem)
        self.submission = make_submission(self.user, self.problem, contest=self.contest, token="tok-a")

    def _points(self):
        row = ContestPoints.objects.filter(user=self.user, contest=self.contest).first()
        return row.points if row else 0

    def test_accepted_scores_and_ranks(self):
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.post_callback(callback_payload("tok-a", time="0.01", memory=2048))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["outcome"], "applied")
        self.assertTrue(data["scored"])

        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.ACCEPTED)
        self.assertIsNotNone(self.submission.settled_at)
        self.assertEqual((self.submission.time, self.submission.memory), (0.01, 2048))
        row = ContestPoints.objects.get(user=self.user, contest=self.contest)
        self.assertEqual((row.points, row.solved_count, row.rank), (250, 1, 1))

    def test_duplicate_accepted_three_seconds_apart_scores_once(self):
        first_at = timezone.now()
        with mock.patch("apps.submissions.services.timezone.now", return_value=first_at):
            self.post_callback(callback_payload("tok-a"))
        with mock.patch("apps.submissions.services.timezone.now", return_value=first_at + timedelta(seconds=3)):
            resp = self.post_callback(callback_payload("tok-a"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["outcome"], "already_terminal")
        self.assertFalse(resp.json()["data"]["scored"])
        self.assertEqual(self._points(), 250)
        self.assertEqual(ProblemAward.objects.count(), 1)
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.settled_at, first_at)

    def test_second_accepted_submission_same_problem_does_not_rescore(self):
        make_submission(self.user, self.problem, contest=self.contest, token="tok-b")
        self.post_callback(callback_payload("tok-a"))
        resp = self.post_callback(callback_payload("tok-b"))
        self.assertEqual(resp.json()["data"]["outcome"], "applied")
        self.assertFalse(resp.json()["data"]["scored"])
        self.assertEqual(self._points(), 250)

    def test_verdicts_are_monotonic(self):
        self.post_callback(callback_payload("tok-a", 4, "Wrong Answer"))
        resp = self.post_callback(callback_payload("tok-a", 3, "Accepted"))
        self.assertEqual(resp.json()["data"]["outcome"], "already_terminal")
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.WRONG_ANSWER)
        self.assertEqual(self._points(), 0)

    def test_processing_then_queued_is_stale(self):
        resp = self.post_callback(callback_payload("tok-a", 2, "Processing"))
        self.assertEqual(resp.json()["data"]["outcome"], "applied")
        resp = self.post_callback(callback_payload("tok-a", 1, "In Queue"))
        self.assertEqual(resp.json()["data"]["outcome"], "stale")
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.RUNNING)

    def test_bad_measurements_do_not_fail_callback(self):
        resp = self.post_callback(callback_payload("tok-a", 4, "Wrong Answer", time="fast", memory=None))
        self.assertEqual(resp.status_code, 200)
        self.submission.refresh_from_db()
        self.assertIsNone(self.submission.time)
        self.assertIsNone(self.submission.memory)

    def test_oversized_memory_is_stored_as_unknown(self):
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.post_callback(callback_payload("tok-a", time="0.1", memory="1e20"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["outcome"], "applied")
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.ACCEPTED)
        self.assertEqual((self.submission.time, self.submission.memory), (0.1, None))
        self.assertEqual(self._points(), 250)

    def test_whole_float_status_id_is_accepted(self):
        resp = self.post_callback({"token": "tok-a", "status": {"id": 3.0, "description": "Accepted"}})
        self.assertEqual(resp.status_code, 200)
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.ACCEPTED)

    def test_post_method_is_accepted(self):
        resp = self.post_callback(callback_payload("tok-a", 5, "Time Limit Exceeded"), method="post")
        self.assertEqual(resp.status_code, 200)
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.TIME_LIMIT_EXCEEDED)

    def test_missing_or_wrong_secret_is_rejected(self):
        for secret in (None, "", "wrong-secret"):
            with self.subTest(secret=secret):
                resp = self.post_callback(callback_payload("tok-a"), secret=secret)
                self.assertEqual(resp.status_code, 401)
                self.assertEqual(resp.json()["code"], 40107)
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.QUEUED)
        self.assertFalse(ContestPoints.objects.exists())

    def test_unconfigured_secret_rejects_everything(self):
        with self.settings(JUDGE0_CALLBACK_SECRET=""):
            resp = self.post_callback(callback_payload("tok-a"), secret="")
        self.assertEqual(resp.status_code, 401)

    def test_malformed_payload_is_400(self):
        resp = self.post_callback({"token": "tok-a", "status": {"id": "three"}})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], 48201)
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.QUEUED)

    def test_unknown_token_is_404(self):
        with self.assertLogs("apps.security", level="WARNING"):
            resp = self.post_callback(callback_payload("no-such-token"))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["code"], 48202)
        self.assertFalse(ContestPoints.objects.exists())
        self.assertFalse(Submission.objects.exclude(status=Status.QUEUED).exists())

    def test_transient_store_error_is_503(self):
        with mock.patch("apps.submissions.repo.SubmissionRepo.lock_by_token", side_effect=OperationalError("db gone")):
            resp = self.post_callback(callback_payload("tok-a"))
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["code"], 50306)

    def test_practice_submission_never_scores(self):
        make_submission(self.user, self.problem, token="tok-practice")
        resp = self.post_callback(callback_payload("tok-practice"))
        self.assertEqual(resp.json()["data"]["outcome"], "applied")
        self.assertFalse(resp.json()["data"]["scored"])
        self.assertFalse(ContestPoints.objects.exists())

    def test_late_callback_after_contest_end_still_scores(self):
        Contest.objects.filter(pk=self.contest.pk).update(end_time=timezone.now() - timedelta(minutes=1))
        resp = self.post_callback(callback_payload("tok-a"))
        self.assertTrue(resp.json()["data"]["scored"])
        self.assertEqual(self._points(), 250)

    def test_time_decay_uses_submission_creation_time(self):
        start = timezone.now() - timedelta(hours=1)
        Contest.objects.filter(pk=self.contest.pk).update(
            scoring_mode=Contest.ScoringMode.TIME_DECAY, start_time=start, end_time=start + timedelta(hours=2)
        )
        Submission.objects.filter(pk=self.submission.pk).update(created_at=start)
        self.post_callback(callback_payload("tok-a"))
        self.assertEqual(self._points(), 375)


class ConcurrentCallbackTests(TransactionTestCase):
    """判题机并发重投同一条 Accepted 回调：只有一次生效，只计分一次"""

    def setUp(self) -> None:
        self.user = make_user("bob")
        self.problem = make_problem("race-sum")
        self.contest = make_contest("race-round")
        attach(self.contest, self.problem)
        self.submission = make_submission(self.user, self.problem, contest=self.contest, token="tok-race")
        refresh = mock.patch("apps.contests.tasks.refresh_contest_leaderboard.delay")
        refresh.start()
        self.addCleanup(refresh.stop)

    def _ingest(self, index: int) -> dict:
        payload = JudgeCallbackSchema.from_dict(
            callback_payload("tok-race", time="0.02", memory=4096),
            auto_validate=True,
        )
        return JudgeCallbackService().ingest(payload)

    def test_duplicate_callbacks_apply_once(self):
        results, errors = run_concurrently(5, self._ingest)
        self.assertEqual(errors, [])
        outcomes = sorted(result["outcome"] for result in results)
        self.assertEqual(outcomes, ["already_terminal"] * 4 + ["applied"])
        self.assertEqual(sum(result["scored"] for result in results), 1)

        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Status.ACCEPTED)
        self.assertEqual(ProblemAward.objects.count(), 1)
        row = ContestPoints.objects.get(user=self.user, contest=self.contest)
        self.assertEqual((row.points, row.solved_count), (250, 1))


class SubmissionAPITests(APITestCase):
    """提交接口：派发返回 202，列表只看自己的，详情限本人"""

    def setUp(self) -> None:
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.problem = make_problem("two-sum")
        self.contest = make_contest("round-1")
        attach(self.contest, self.problem)

    def test_create_returns_accepted(self):
        self.client.force_authenticate(self.alice)
        with mock.patch("apps.submissions.services.Judge0Client") as client_cls:
            client_cls.return_value.submit.return_value = Judge0Submission(token="tok-api")
            resp = self.client.post(
                "/api/submissions/",
                {"problem": "two-sum", "language": "py", "sourceCode": "print(1)", "contest": "round-1"},
                format="json",
            )
        self.assertEqual(resp.status_code, 202)
        body = resp.json()
        self.assertEqual(body["data"]["status"], "pending")
        client_cls.return_value.submit.assert_called_once_with(source_code="print(1)", language_id=71)
        self.assertEqual(Submission.objects.get().token, "tok-api")

    def test_create_requires_login(self):
        resp = self.client.post("/api/submissions/", {"problem": "two-sum"}, format="json")
        self.assertIn(resp.status_code, (401, 403))

    def test_unsupported_language_is_400(self):
        self.client.force_authenticate(self.alice)
        with mock.patch("apps.submissions.services.Judge0Client") as client_cls:
            resp = self.client.post(
                "/api/submissions/",
                {"problem": "two-sum", "language": "cobol", "source_code": "x"},
                format="json",
            )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], 48103)
        client_cls.return_value.submit.assert_not_called()

    def test_judge_unavailable_is_503(self):
        self.client.force_authenticate(self.alice)
        with mock.patch("apps.submissions.services.Judge0Client") as client_cls:
            client_cls.return_value.submit.side_effect = JudgeUnavailableError()
            resp = self.client.post(
                "/api/submissions/",
                {"problem": "two-sum", "language": "cpp", "source_code": "x"},
                format="json",
            )
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["code"], 50305)

    def test_list_and_detail_are_scoped_to_owner(self):
        mine = make_submission(self.alice, self.problem, contest=self.contest, token="tok-1")
        theirs = make_submission(self.bob, self.problem, token="tok-2")

        self.client.force_authenticate(self.alice)
        resp = self.client.get("/api/submissions/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([item["id"] for item in resp.json()["data"]], [mine.id])

        resp = self.client.get("/api/submissions/?contest=round-1")
        self.assertEqual(len(resp.json()["data"]), 1)

        self.assertEqual(self.client.get(f"/api/submissions/{mine.id}/").json()["data"]["source_code"], mine.source_code)
        self.assertEqual(self.client.get(f"/api/submissions/{theirs.id}/").status_code, 403)
        self.assertEqual(self.client.get("/api/submissions/999999/").status_code, 404)

    def test_submissions_are_throttled_per_user(self):
        cache.clear()
        self.client.force_authenticate(self.alice)
        payload = {"problem": "two-sum", "language": "cpp", "source_code": "x"}
        with mock.patch.object(SubmissionRateThrottle, "THROTTLE_RATES", {"code_submit": "1/min"}), \
                mock.patch("apps.submissions.services.Judge0Client") as client_cls:
            client_cls.return_value.submit.side_effect = [Judge0Submission(token="t-1"), Judge0Submission(token="t-2")]
            first = self.client.post("/api/submissions/", payload, format="json")
            second = self.client.post("/api/submissions/", payload, format="json")
        self.assertEqual(first.status_code, 202)
        self.assertEqual(second.status_code, 429)
        self.assertEqual(second.json()["code"], 42900)
        self.assertEqual(Submission.objects.count(), 1)

    @override_settings(SUBMISSION_PAGE_SIZE=2)
    def test_list_is_paginated(self):
        for index in range(3):
            make_submission(self.alice, self.problem, token=f"tok-page-{index}")
        self.client.force_authenticate(self.alice)
        body = self.client.get("/api/submissions/").json()
        self.assertEqual(len(body["data"]), 2)
        self.assertEqual(body["extra"]["total"], 3)
        self.assertTrue(body["extra"]["has_next"])
        self.assertEqual(len(self.client.get("/api/submissions/?page=2").json()["data"]), 1)
        self.assertEqual(len(self.client.get("/api/submissions/?page_size=500").json()["data"]), 3)
