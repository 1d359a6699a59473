from django.test import TestCase

from apps.common.exceptions import NotFoundError, ProblemNotAvailableError
from apps.common.tests_utils import make_problem

from .models import Problem
from .repo import ProblemRepo


class ProblemTests(TestCase):
    def test_default_points_follow_difficulty(self):
        self.assertEqual(make_problem("two-sum", difficulty=Problem.Difficulty.EASY).default_points, 250)
        self.assertEqual(make_problem("lru-cache", difficulty=Problem.Difficulty.MEDIUM).default_points, 500)
        self.assertEqual(make_problem("median", difficulty=Problem.Difficulty.HARD).default_points, 1000)

    def test_unknown_difficulty_falls_back_to_easy(self):
        problem = Problem(title="legacy", slug="legacy", difficulty="legendary")
        self.assertEqual(problem.default_points, 250)

    def test_get_active_by_slug(self):
        make_problem("two-sum")
        make_problem("retired", is_active=False)
        repo = ProblemRepo()
        self.assertEqual(repo.get_active_by_slug("two-sum").slug, "two-sum")
        with self.assertRaises(ProblemNotAvailableError):
            repo.get_active_by_slug("retired")
        with self.assertRaises(NotFoundError):
            repo.get_active_by_slug("missing")
