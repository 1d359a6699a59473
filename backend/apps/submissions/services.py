from __future__ import annotations

from typing import Any, Optional

from django.db.models import QuerySet
from django.utils import timezone

from apps.common.base.base_service import BaseService
from apps.common.exceptions import UnknownTokenError
from apps.common.infra.judge0_client import Judge0Client
from apps.common.infra.logger import get_logger, logger_extra, mask_token
from apps.common.security import log_security_event
from apps.common.utils.time import isoformat
from apps.contests.repo import ContestProblemRepo, ContestRepo
from apps.contests.services import ContestContextService, ScoringService, calculate_points
from apps.problems.repo import ProblemRepo

from .languages import get_language
from .models import Submission
from .repo import SubmissionRepo
from .schemas import JudgeCallbackSchema, Measurement, SubmissionCreateSchema, SubmissionListQuerySchema
from .verdicts import NON_TERMINAL, TERMINAL, Outcome, can_advance, public_status, resolve_status

# 服务层：判题派发、回调处理（状态机 + 计分）、提交查询

logger = get_logger(__name__)


def serialize_submission(submission: Submission, *, include_source: bool = False) -> dict:
    """提交记录序列化：非终态统一展示为 pending"""
    data = {
        "id": submission.id,
        "problem": getattr(getattr(submission, "problem", None), "slug", None),
        "contest": getattr(getattr(submission, "contest", None), "slug", None),
        "user": submission.user_id,
        "language": submission.language,
        "status": public_status(submission.status),
        "status_description": submission.status_description,
        "time": submission.time,
        "memory": submission.memory,
        "created_at": isoformat(submission.created_at),
        "settled_at": isoformat(submission.settled_at),
    }
    if include_source:
        data["source_code"] = submission.source_code
    return data


class SubmissionStoreService(BaseService[Submission]):
    """
    持久化一条已被判题机受理的提交

    独立成服务是为了让数据库瞬时故障的重试只覆盖这一步，不会重复调用判题机
    """

    store_retries = None

    def __init__(self, submission_repo: SubmissionRepo | None = None):
        self.submission_repo = submission_repo or SubmissionRepo()

    def perform(self, data: dict) -> Submission:
        return self.submission_repo.create(data)


class SubmissionDispatchService(BaseService[Submission]):
    """
    判题派发服务：

    1. 语言注册表解析语言，不支持直接拒绝，不产生远程调用
    2. 校验题目可用；带比赛时校验比赛可见、进行中且包含该题
    3. 调用判题机拿到 token（客户端内部有限重试）
    4. 以 queued 状态写入提交（数据库瞬时故障有限重试）
    """

    atomic_enabled = False

    def __init__(
            self,
            judge_client: Judge0Client | None = None,
            problem_repo: ProblemRepo | None = None,
            context_service: ContestContextService | None = None,
            store_service: SubmissionStoreService | None = None,
    ):
        self.judge_client = judge_client
        self.problem_repo = problem_repo or ProblemRepo()
        self.context_service = context_service or ContestContextService()
        self.store_service = store_service or SubmissionStoreService()

    def perform(self, user, schema: SubmissionCreateSchema) -> Submission:
        language = get_language(schema.language)
        problem = self.problem_repo.get_active_by_slug(schema.problem)

        contest = None
        if schema.contest:
            contest = self.context_service.get_contest(schema.contest)
            self.context_service.ensure_contest_running(contest)
            self.context_service.get_problem_link(contest, problem.id)

        client = self.judge_client or Judge0Client()
        judged = client.submit(source_code=schema.source_code, language_id=language.judge0_id)

        submission = self.store_service.execute({
            "user": user,
            "contest": contest,
            "problem": problem,
            "language": language.id,
            "source_code": schema.source_code,
            "token": judged.token,
            "status": Submission.Status.QUEUED,
        })
        logger.info(
            "判题派发-成功",
            extra=logger_extra({
                "submission_id": submission.id,
                "problem": problem.slug,
                "contest": getattr(contest, "slug", None),
                "language": language.id,
                "token_prefix": mask_token(judged.token),
            }),
        )
        return submission

    def dispatch(self, user, schema: SubmissionCreateSchema) -> Submission:
        return self.execute(user, schema)


class VerdictService(BaseService[tuple[Submission, Outcome]]):
    """
    判题状态机：

    - 终态不可再变；非终态之间只能 queued → running
    - 每次转移是一条带状态条件的 UPDATE，命中行数决定谁生效，
      并发的重复回调只有一个会 applied
    - 首次进入终态时写入 settled_at 与耗时/内存
    """

    def __init__(self, submission_repo: SubmissionRepo | None = None):
        self.submission_repo = submission_repo or SubmissionRepo()

    def perform(
            self,
            submission: Submission,
            target: str,
            *,
            description: str = "",
            time: Optional[Measurement] = None,
            memory: Optional[Measurement] = None,
    ) -> tuple[Submission, Outcome]:
        allowed_from = [state for state in NON_TERMINAL if can_advance(state, target)]
        values: dict[str, Any] = {"status": target, "status_description": description}
        if target in TERMINAL:
            values["settled_at"] = timezone.now()
            values["time"] = time.value_or_none() if time else None
            values["memory"] = memory.value_or_none() if memory else None

        applied = bool(allowed_from) and self.submission_repo.update_status_if(
            submission.pk, allowed_from=allowed_from, values=values
        )
        submission.refresh_from_db()
        if applied:
            return submission, Outcome.APPLIED
        if submission.status in TERMINAL:
            return submission, Outcome.ALREADY_TERMINAL
        return submission, Outcome.STALE

    def transition(self, submission: Submission, target: str, **kwargs) -> tuple[Submission, Outcome]:
        return self.execute(submission, target, **kwargs)


class JudgeCallbackService(BaseService[dict]):
    """
    判题回调处理：

    - 按 token 加锁取提交，找不到抛 UnknownTokenError 并记安全日志
    - 状态机转移与首次通过的计分在同一事务内完成
    - 重复 / 乱序回调返回成功，outcome 标明是否生效
    - 数据库瞬时故障整体回滚后有限重试，耗尽返回 503 让判题机重投
    """

    store_retries = None

    def __init__(
            self,
            submission_repo: SubmissionRepo | None = None,
            verdict_service: VerdictService | None = None,
            scoring_service: ScoringService | None = None,
            contest_repo: ContestRepo | None = None,
            link_repo: ContestProblemRepo | None = None,
    ):
        self.submission_repo = submission_repo or SubmissionRepo()
        self.verdict_service = verdict_service or VerdictService(self.submission_repo)
        self.scoring_service = scoring_service or ScoringService()
        self.contest_repo = contest_repo or ContestRepo()
        self.link_repo = link_repo or ContestProblemRepo()

    def perform(self, payload: JudgeCallbackSchema, *, request=None) -> dict:
        try:
            submission = self.submission_repo.lock_by_token(payload.token)
        except UnknownTokenError:
            log_security_event(
                action="callback_unknown_token",
                request=request,
                detail="回调 token 不存在，可能是重放或伪造请求",
                extra_fields={"token_prefix": mask_token(payload.token), "judge_status": payload.status_id},
            )
            raise

        target = resolve_status(payload.status_id, payload.status_description)
        submission, outcome = self.verdict_service.transition(
            submission,
            target,
            description=payload.status_description,
            time=payload.time_measurement,
            memory=payload.memory_measurement,
        )

        log_fields = {
            "submission_id": submission.id,
            "judge_status": payload.status_id,
            "target_status": target,
            "current_status": submission.status,
            "outcome": outcome.value,
        }
        scored = False
        if outcome is Outcome.APPLIED:
            logger.info("判题回调-状态已更新", extra=logger_extra(log_fields))
            if submission.status == Submission.Status.ACCEPTED and submission.contest_id:
                scored = self._score(submission)
        else:
            logger.info("判题回调-重复或过期回调，忽略", extra=logger_extra(log_fields))

        return {
            "submission": submission.id,
            "status": submission.status,
            "outcome": outcome.value,
            "scored": scored,
        }

    def _score(self, submission: Submission) -> bool:
        """首次通过的比赛提交：按提交创建时间计算分值并计分"""
        contest = self.contest_repo.get_or_none(pk=submission.contest_id)
        link = self.link_repo.get_or_none(contest_id=submission.contest_id, problem_id=submission.problem_id)
        if contest is None or link is None:
            logger.warning(
                "计分-比赛或比赛题目已不存在，跳过",
                extra=logger_extra({"submission_id": submission.id, "contest_id": submission.contest_id}),
            )
            return False
        points = calculate_points(contest, link, submission.created_at)
        result = self.scoring_service.apply_acceptance(
            submission.user_id,
            submission.contest_id,
            submission.problem_id,
            points,
            submission.settled_at,
            submission_id=submission.id,
        )
        return result.granted

    def ingest(self, payload: JudgeCallbackSchema, *, request=None) -> dict:
        return self.execute(payload, request=request)


class SubmissionQueryService(BaseService[QuerySet]):
    """提交查询：普通用户只能看到自己的提交，管理员可看全部"""

    atomic_enabled = False

    def __init__(self, submission_repo: SubmissionRepo | None = None):
        self.submission_repo = submission_repo or SubmissionRepo()

    def perform(self, user, schema: SubmissionListQuerySchema) -> QuerySet:
        filters: dict[str, Any] = {}
        if not user.is_staff:
            filters["user_id"] = user.id
        if schema.problem:
            filters["problem__slug"] = schema.problem
        if schema.contest:
            filters["contest__slug"] = schema.contest
        return self.submission_repo.filter_with_related(**filters).order_by("-created_at", "-id")

    def get_detail(self, pk: int) -> Submission:
        return self.submission_repo.get_detail(pk)
