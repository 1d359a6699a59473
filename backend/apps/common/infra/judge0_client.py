"""
Judge0 HTTP 客户端封装：
- 统一读取 settings 中的 Judge0 地址、回调地址、鉴权头与超时配置
- 只负责“把源代码交给判题机并拿回 token”，判题结果由回调异步送达
- 连接失败 / 超时 / 5xx 在客户端层做有限次线性退避重试；耗尽抛 JudgeUnavailableError
- 4xx 视为请求本身有问题，不重试，直接抛出
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings

from apps.common.exceptions import JudgeUnavailableError, SubmissionError
from apps.common.infra.logger import get_logger, logger_extra, mask_token

_logger = get_logger(__name__)


@dataclass(frozen=True)
class Judge0Submission:
    """判题机受理结果：目前只有 token 有意义"""

    token: str


class Judge0Client:
    """
    Judge0 客户端

    用法：
        token = Judge0Client().submit(source_code="...", language_id=54).token
    """

    def __init__(
            self,
            *,
            base_url: Optional[str] = None,
            callback_url: Optional[str] = None,
            auth_token: Optional[str] = None,
            timeout: Optional[float] = None,
            max_retries: Optional[int] = None,
            backoff_seconds: Optional[float] = None,
            session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url if base_url is not None else getattr(settings, "JUDGE0_URL", "")).rstrip("/")
        self.callback_url = callback_url if callback_url is not None else getattr(settings, "JUDGE0_CALLBACK_URL", "")
        self.auth_token = auth_token if auth_token is not None else getattr(settings, "JUDGE0_AUTH_TOKEN", "")
        self.timeout = float(timeout if timeout is not None else getattr(settings, "JUDGE0_TIMEOUT_SECONDS", 5))
        self.max_retries = int(max_retries if max_retries is not None else getattr(settings, "JUDGE_DISPATCH_MAX_RETRIES", 3))
        self.backoff_seconds = float(
            backoff_seconds if backoff_seconds is not None else getattr(settings, "JUDGE_DISPATCH_BACKOFF_SECONDS", 0.5)
        )
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["X-Auth-Token"] = self.auth_token
        return headers

    def _post(self, path: str, *, params: dict, json: dict) -> requests.Response:
        """
        带有限重试的 POST：
        - ConnectionError / Timeout / 5xx → 退避 backoff * attempt 秒后重试
        - 重试耗尽 → JudgeUnavailableError
        """
        if not self.base_url:
            raise JudgeUnavailableError(message="判题服务地址未配置（JUDGE0_URL）")
        url = f"{self.base_url}{path}"
        attempts = max(1, self.max_retries)
        last_error: str = ""
        for attempt in range(1, attempts + 1):
            try:
                resp = self.session.post(url, params=params, json=json, headers=self._headers(), timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as exc:
                last_error = str(exc)
            else:
                if resp.status_code < 500:
                    return resp
                last_error = f"HTTP {resp.status_code}"

            _logger.warning(
                "判题派发-请求失败",
                extra=logger_extra({"url": url, "attempt": attempt, "max_attempts": attempts, "error": last_error}),
            )
            if attempt < attempts:
                time.sleep(self.backoff_seconds * attempt)

        raise JudgeUnavailableError(extra={"attempts": attempts, "error": last_error})

    def submit(self, *, source_code: str, language_id: int) -> Judge0Submission:
        """
        提交源代码到判题机，返回 token

        wait=false：不等待判题完成，结果通过 callback_url 回调
        """
        payload = {
            "source_code": source_code,
            "language_id": language_id,
        }
        if self.callback_url:
            payload["callback_url"] = self.callback_url
        resp = self._post("/submissions", params={"base64_encoded": "false", "wait": "false"}, json=payload)

        if resp.status_code >= 400:
            _logger.warning(
                "判题派发-判题机拒绝请求",
                extra=logger_extra({"status_code": resp.status_code, "body": resp.text[:500]}),
            )
            raise SubmissionError(message="判题机拒绝了该提交", extra={"status_code": resp.status_code})

        try:
            data = resp.json()
        except ValueError:
            data = None
        token = data.get("token") if isinstance(data, dict) else None
        if not token or not isinstance(token, str):
            raise JudgeUnavailableError(message="判题服务返回内容缺少 token")

        _logger.info(
            "判题派发-判题机已受理",
            extra=logger_extra({"language_id": language_id, "token_prefix": mask_token(token)}),
        )
        return Judge0Submission(token=token)
