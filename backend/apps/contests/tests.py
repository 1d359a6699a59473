from __future__ import annotations

from datetime import timedelta
from unittest import mock

from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.common.exceptions import (
    ContestEndedError,
    ContestNotStartedError,
    LeaderboardDisabledError,
    NotFoundError,
    ProblemNotInContestError,
    ValidationError,
)
from apps.common.tests_utils import (
    FakeRedis,
    attach,
    make_contest,
    make_problem,
    make_user,
    patch_redis,
    run_concurrently,
)
from apps.common.utils.redis_keys import leaderboard_version_key
from apps.problems.models import Problem

from .models import Contest, ContestPoints, ProblemAward
from .schemas import LeaderboardQuerySchema
from .services import (
    ContestContextService,
    LeaderboardService,
    ScoringService,
    calculate_points,
    display_name,
)
from .tasks import refresh_contest_leaderboard


# 测试用例：覆盖计分幂等、排行榜排序/排名、缓存版本与刷新任务


class PointCalculationTests(TestCase):
    """分值计算：固定分值 / 自定义分值 / 时间衰减"""

    def setUp(self) -> None:
        self.start = timezone.now().replace(microsecond=0)
        self.end = self.start + timedelta(hours=2)
        self.contest = make_contest("calc", start_time=self.start, end_time=self.end)
        self.easy = make_problem("easy-one")
        self.hard = make_problem("hard-one", difficulty=Problem.Difficulty.HARD)

    def test_fixed_uses_difficulty_or_override(self):
        self.assertEqual(calculate_points(self.contest, attach(self.contest, self.easy), self.start), 250)
        self.assertEqual(calculate_points(self.contest, attach(self.contest, self.hard, points=42), self.start), 42)

    def test_time_decay_by_submission_time(self):
        self.contest.scoring_mode = Contest.ScoringMode.TIME_DECAY
        link = attach(self.contest, self.easy)
        self.assertEqual(calculate_points(self.contest, link, self.start), 375)
        self.assertEqual(calculate_points(self.contest, link, self.start + timedelta(hours=1)), 250)
        self.assertEqual(calculate_points(self.contest, link, self.end), 125)
        # 比赛结束后才到达的回调按下限计
        self.assertEqual(calculate_points(self.contest, link, self.end + timedelta(days=1)), 125)

    def test_time_decay_zero_duration_gives_floor(self):
        self.contest.scoring_mode = Contest.ScoringMode.TIME_DECAY
        self.contest.end_time = self.contest.start_time
        link = attach(self.contest, self.easy)
        self.assertEqual(calculate_points(self.contest, link, self.start), 125)


class ContestContextTests(TestCase):
    """比赛上下文：可见性与时间窗口"""

    def test_hidden_and_deleted_contest_look_missing(self):
        make_contest("secret", hidden=True)
        make_contest("gone", deleted_at=timezone.now())
        service = ContestContextService()
        with self.assertRaises(NotFoundError):
            service.get_contest("secret")
        with self.assertRaises(NotFoundError):
            service.get_contest("gone")
        with self.assertRaises(NotFoundError):
            service.get_contest("missing")

    def test_running_window(self):
        upcoming = make_contest("upcoming", hours_before=-1, hours_after=3)
        finished = make_contest("finished", hours_before=5, hours_after=-1)
        with self.assertRaises(ContestNotStartedError):
            ContestContextService.ensure_contest_running(upcoming)
        with self.assertRaises(ContestEndedError):
            ContestContextService.ensure_contest_running(finished)

    def test_problem_must_be_attached(self):
        contest = make_contest("attached")
        problem = make_problem("loose")
        with self.assertRaises(ProblemNotInContestError):
            ContestContextService().get_problem_link(contest, problem.id)


class ScoringServiceTests(TestCase):
    """计分服务：同一题只计分一次，多题累加，积分行惰性创建"""

    def setUp(self) -> None:
        self.contest = make_contest("scoring")
        self.user = make_user("alice")
        self.problems = [
            make_problem("p-easy"),
            make_problem("p-medium", difficulty=Problem.Difficulty.MEDIUM),
            make_problem("p-hard", difficulty=Problem.Difficulty.HARD),
        ]
        self.t0 = timezone.now().replace(microsecond=0)

    def _award(self, problem, points, seconds=0):
        return ScoringService().apply_acceptance(
            self.user.id, self.contest.id, problem.id, points, self.t0 + timedelta(seconds=seconds)
        )

    def test_same_problem_scores_once(self):
        first = self._award(self.problems[0], 250)
        for offset in range(1, 4):
            again = self._award(self.problems[0], 250, seconds=offset)
            self.assertFalse(again.granted)
        self.assertTrue(first.granted)
        row = ContestPoints.objects.get(user=self.user, contest=self.contest)
        self.assertEqual(row.points, 250)
        self.assertEqual(row.solved_count, 1)
        self.assertEqual(row.last_successful_submission_at, self.t0)
        self.assertEqual(ProblemAward.objects.count(), 1)

    def test_distinct_problems_sum_with_stale_instance(self):
        """持有过期的内存对象也不会丢失递增：递增走单条 UPDATE"""
        self._award(self.problems[0], 250)
        stale = ContestPoints.objects.get(user=self.user, contest=self.contest)
        self._award(self.problems[1], 500, seconds=10)
        self._award(self.problems[2], 1000, seconds=5)
        self.assertEqual(stale.points, 250)

        stale.refresh_from_db()
        self.assertEqual(stale.points, 1750)
        self.assertEqual(stale.solved_count, 3)
        # 最近通过时间取较晚者，乱序到达不会回退
        self.assertEqual(stale.last_successful_submission_at, self.t0 + timedelta(seconds=10))

    def test_negative_points_rejected(self):
        with self.assertRaises(ValidationError):
            self._award(self.problems[0], -1)
        self.assertFalse(ContestPoints.objects.exists())

    def test_commit_marks_leaderboard_dirty(self):
        fake = FakeRedis()
        with patch_redis(fake), mock.patch("apps.contests.tasks.refresh_contest_leaderboard.delay") as delay:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                self._award(self.problems[0], 250)
                # 提交前不触发
                delay.assert_not_called()
        self.assertEqual(len(callbacks), 1)
        delay.assert_called_once_with(self.contest.id)
        self.assertEqual(fake.store[leaderboard_version_key(self.contest.id)], 1)

    def test_duplicate_award_does_not_mark_dirty(self):
        self._award(self.problems[0], 250)
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self._award(self.problems[0], 250, seconds=3)
        self.assertEqual(callbacks, [])

    def test_enqueue_failure_is_not_fatal(self):
        with mock.patch("apps.contests.tasks.refresh_contest_leaderboard.delay", side_effect=RuntimeError("broker down")):
            with self.captureOnCommitCallbacks(execute=True):
                result = self._award(self.problems[0], 250)
        self.assertTrue(result.granted)
        self.assertEqual(ContestPoints.objects.get().points, 250)

    def test_scoring_refreshes_rank_snapshot_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            self._award(self.problems[0], 250)
        self.assertEqual(ContestPoints.objects.get().rank, 1)


class ConcurrentScoringTests(TransactionTestCase):
    """多线程同时计分：不同题目累加不丢失，同一题目只授予一次"""

    def setUp(self) -> None:
        self.contest = make_contest("racing")
        self.user = make_user("racer")
        self.problems = [make_problem(f"race-{index}") for index in range(6)]
        self.t0 = timezone.now().replace(microsecond=0)
        refresh = mock.patch("apps.contests.tasks.refresh_contest_leaderboard.delay")
        refresh.start()
        self.addCleanup(refresh.stop)

    def _award(self, problem, points, seconds=0):
        return ScoringService().apply_acceptance(
            self.user.id, self.contest.id, problem.id, points, self.t0 + timedelta(seconds=seconds)
        )

    def test_distinct_problems_sum_without_lost_updates(self):
        points = [100 * (index + 1) for index in range(len(self.problems))]
        results, errors = run_concurrently(
            len(self.problems),
            lambda index: self._award(self.problems[index], points[index], seconds=index),
        )
        self.assertEqual(errors, [])
        self.assertTrue(all(result.granted for result in results))

        row = ContestPoints.objects.get(user=self.user, contest=self.contest)
        self.assertEqual(row.points, sum(points))
        self.assertEqual(row.solved_count, len(self.problems))
        self.assertEqual(row.last_successful_submission_at, self.t0 + timedelta(seconds=len(self.problems) - 1))
        self.assertEqual(ContestPoints.objects.count(), 1)
        self.assertEqual(ProblemAward.objects.count(), len(self.problems))

    def test_same_problem_is_granted_once(self):
        results, errors = run_concurrently(5, lambda index: self._award(self.problems[0], 250, seconds=index))
        self.assertEqual(errors, [])
        self.assertEqual(sum(result.granted for result in results), 1)
        row = ContestPoints.objects.get(user=self.user, contest=self.contest)
        self.assertEqual((row.points, row.solved_count), (250, 1))
        self.assertEqual(ProblemAward.objects.count(), 1)


class LeaderboardServiceTests(TestCase):
    """排行榜：排序、连续排名、截断、缓存版本"""

    def setUp(self) -> None:
        self.contest = make_contest("board")
        self.t0 = timezone.now().replace(microsecond=0)
        self.users = {name: make_user(name) for name in ("alice", "bob", "carol", "dave")}

    def _points(self, name, points, seconds, solved=1):
        return ContestPoints.objects.create(
            user=self.users[name],
            contest=self.contest,
            points=points,
            solved_count=solved,
            last_successful_submission_at=self.t0 + timedelta(seconds=seconds),
        )

    def test_order_and_position_ranks(self):
        self._points("alice", 500, 10)
        self._points("bob", 500, 5)
        self._points("carol", 1000, 20, solved=2)
        self._points("dave", 500, 5)

        entries = LeaderboardService().execute("board")
        self.assertEqual([e["user_name"] for e in entries], ["carol", "bob", "dave", "alice"])
        self.assertEqual([e["rank"] for e in entries], [1, 2, 3, 4])
        self.assertEqual(entries[0]["solved_count"], 2)

        # 同分同时间按用户 ID 兜底，多次查询结果稳定
        again = LeaderboardService().execute("board")
        self.assertEqual(entries, again)

    def test_earlier_success_wins_tie(self):
        self._points("alice", 500, 10)
        self._points("bob", 500, 5)
        entries = LeaderboardService().execute("board")
        self.assertEqual(entries[0]["user_id"], self.users["bob"].id)
        self.assertEqual(entries[1]["user_id"], self.users["alice"].id)

    def test_limit_is_clamped(self):
        for index, name in enumerate(self.users):
            self._points(name, 100 * (index + 1), index)
        self.assertEqual(len(LeaderboardService().execute("board", 2)), 2)
        self.assertEqual(LeaderboardService.clamp_limit(1000), 100)
        self.assertEqual(LeaderboardService.clamp_limit(0), 1)
        self.assertEqual(LeaderboardService.clamp_limit(None), 100)

    def test_invisible_contests_rejected(self):
        make_contest("hidden-board", hidden=True)
        make_contest("deleted-board", deleted_at=timezone.now())
        make_contest("closed-board", leaderboard_enabled=False)
        service = LeaderboardService()
        with self.assertRaises(NotFoundError):
            service.execute("hidden-board")
        with self.assertRaises(NotFoundError):
            service.execute("deleted-board")
        with self.assertRaises(LeaderboardDisabledError):
            service.execute("closed-board")

    @override_settings(REDIS_ENABLED=True)
    def test_cached_view_follows_version(self):
        fake = FakeRedis()
        self._points("alice", 500, 10)
        with patch_redis(fake):
            first = LeaderboardService().execute("board")
            self._points("bob", 900, 5)
            # 版本号未变化时读缓存
            self.assertEqual(LeaderboardService().execute("board"), first)
            LeaderboardService.invalidate_cache(self.contest.id)
            fresh = LeaderboardService().execute("board")
        self.assertEqual([e["user_name"] for e in fresh], ["bob", "alice"])

    @override_settings(REDIS_ENABLED=True)
    def test_redis_failure_degrades_to_database(self):
        import redis

        broken = mock.Mock()
        broken.get.side_effect = redis.RedisError("down")
        broken.set.side_effect = redis.RedisError("down")
        self._points("alice", 500, 10)
        with mock.patch("apps.common.infra.redis_client._get_client", return_value=broken):
            entries = LeaderboardService().execute("board")
        self.assertEqual(len(entries), 1)

    def test_refresh_ranks_writes_snapshot(self):
        alice = self._points("alice", 500, 10)
        bob = self._points("bob", 800, 5)
        changed = LeaderboardService().refresh_ranks(self.contest)
        self.assertEqual(changed, 2)
        alice.refresh_from_db()
        bob.refresh_from_db()
        self.assertEqual((bob.rank, alice.rank), (1, 2))
        self.assertEqual(LeaderboardService().refresh_ranks(self.contest), 0)

    def test_display_name_fallbacks(self):
        self.assertEqual(display_name({"user__first_name": "Ada", "user__last_name": "Lovelace"}), "Ada Lovelace")
        self.assertEqual(display_name({"user__email": "grace@example.com"}), "grace")
        self.assertEqual(display_name({"user__username": "linus"}), "linus")


class RefreshTaskTests(TestCase):
    """排行榜刷新任务：写排名快照、推送、通知缓存失效"""

    def setUp(self) -> None:
        self.contest = make_contest("task-board")
        self.user = make_user("alice")
        ContestPoints.objects.create(user=self.user, contest=self.contest, points=250, solved_count=1,
                                     last_successful_submission_at=timezone.now())

    def test_refresh_notifies_and_broadcasts(self):
        with mock.patch("apps.contests.tasks.notify_paths_changed") as notify, \
                mock.patch("apps.contests.tasks.broadcast_contest") as broadcast:
            changed = refresh_contest_leaderboard(self.contest.id)
        self.assertEqual(changed, 1)
        notify.assert_called_once_with(["/contests/task-board", "/contests/task-board/leaderboard"])
        events = [call.args[1]["event"] for call in broadcast.call_args_list]
        self.assertEqual(events, ["leaderboard_updated", "leaderboard_snapshot"])
        self.assertEqual(ContestPoints.objects.get().rank, 1)

    def test_hidden_contest_is_not_broadcast(self):
        Contest.objects.filter(pk=self.contest.pk).update(hidden=True)
        with mock.patch("apps.contests.tasks.notify_paths_changed"), \
                mock.patch("apps.contests.tasks.broadcast_contest") as broadcast:
            refresh_contest_leaderboard(self.contest.id)
        broadcast.assert_not_called()

    def test_missing_contest_is_noop(self):
        self.assertEqual(refresh_contest_leaderboard(999999), 0)


class LeaderboardQuerySchemaTests(TestCase):
    def test_limit_parsing(self):
        self.assertIsNone(LeaderboardQuerySchema.from_dict({"contest_slug": "x", "limit": ""}, auto_validate=True).limit)
        self.assertEqual(LeaderboardQuerySchema.from_dict({"contest_slug": "x", "limit": "5"}, auto_validate=True).limit, 5)
        with self.assertRaises(ValidationError):
            LeaderboardQuerySchema.from_dict({"contest_slug": "x", "limit": "0"}, auto_validate=True)
        with self.assertRaises(ValidationError):
            LeaderboardQuerySchema.from_dict({"contest_slug": "x", "limit": "ten"}, auto_validate=True)


@override_settings(LEADERBOARD_MAX_LIMIT=3)
class LeaderboardAPITests(APITestCase):
    """排行榜 API 冒烟：公开读取、统一响应结构、404"""

    def setUp(self) -> None:
        self.contest = make_contest("api-board")
        t0 = timezone.now().replace(microsecond=0)
        for index in range(5):
            ContestPoints.objects.create(
                user=make_user(f"user{index}"),
                contest=self.contest,
                points=100 * index,
                solved_count=index,
                last_successful_submission_at=t0 + timedelta(seconds=index),
            )

    def test_leaderboard_public_and_clamped(self):
        resp = self.client.get("/api/contests/api-board/leaderboard/?limit=50")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["code"], 0)
        self.assertEqual([e["rank"] for e in body["data"]], [1, 2, 3])
        self.assertEqual(body["data"][0]["user_name"], "user4")
        self.assertEqual(body["extra"]["count"], 3)

    def test_bad_limit_is_400(self):
        resp = self.client.get("/api/contests/api-board/leaderboard/?limit=-1")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], 40002)

    def test_hidden_contest_is_404(self):
        Contest.objects.filter(pk=self.contest.pk).update(hidden=True)
        resp = self.client.get("/api/contests/api-board/leaderboard/")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.client.get("/api/contests/api-board/").status_code, 404)

    def test_contest_detail(self):
        resp = self.client.get("/api/contests/api-board/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["slug"], "api-board")
