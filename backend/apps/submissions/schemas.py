from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Mapping, Optional

from apps.common.base.base_schema import BaseSchema
from apps.common.exceptions import MalformedCallbackError, SourceTooLargeError, ValidationError

# Schema：代码提交入参、判题回调载荷、提交列表筛选

#: 源代码大小上限（UTF-8 字节）
MAX_SOURCE_BYTES = 64 * 1024

#: 内存列（PositiveIntegerField）可存的最大值，超出按未知处理
MAX_MEMORY_KB = 2147483647


@dataclass
class SubmissionCreateSchema(BaseSchema[None]):
    """
    代码提交入参：
    - problem：题目 slug
    - language：语言内部标识（cpp / js / py / rs），合法性由语言注册表校验
    - source_code：非空，不超过 64 KiB
    - contest：可选，比赛 slug；为空表示练习提交
    """

    auto_validate: ClassVar[bool] = True
    ALIASES: ClassVar[dict[str, str]] = {
        "problemSlug": "problem",
        "contestSlug": "contest",
        "sourceCode": "source_code",
        "languageId": "language",
    }

    problem: str
    language: str
    source_code: str
    contest: Optional[str] = None

    def validate(self) -> None:
        if not isinstance(self.problem, str) or not self.problem.strip():
            raise ValidationError(message="缺少题目标识")
        if not isinstance(self.language, str) or not self.language.strip():
            raise ValidationError(message="缺少编程语言")
        if not isinstance(self.source_code, str) or not self.source_code.strip():
            raise ValidationError(message="源代码不能为空")
        if len(self.source_code.encode("utf-8")) > MAX_SOURCE_BYTES:
            raise SourceTooLargeError(extra={"max_bytes": MAX_SOURCE_BYTES})
        if self.contest is not None and not isinstance(self.contest, str):
            raise ValidationError(message="比赛标识格式错误")
        self.problem = self.problem.strip()
        self.language = self.language.strip().lower()
        self.contest = (self.contest or "").strip() or None


@dataclass(frozen=True)
class Measurement:
    """
    判题机上报的耗时/内存：
    - known：解析成功，value 为数值
    - unknown：缺失、无法解析或超出存储范围，raw 保留原始输入便于排查
    判题机可能给字符串、数字或 null，解析失败不影响回调处理
    """

    KNOWN: ClassVar[str] = "known"
    UNKNOWN: ClassVar[str] = "unknown"

    kind: str
    value: Optional[float] = None
    raw: Any = None

    @classmethod
    def known(cls, value: float) -> "Measurement":
        return cls(kind=cls.KNOWN, value=value)

    @classmethod
    def unknown(cls, raw: Any = None) -> "Measurement":
        return cls(kind=cls.UNKNOWN, raw=raw)

    @classmethod
    def parse(
        cls,
        raw: Any,
        cast: Callable[[float], float] = float,
        upper: Optional[float] = None,
    ) -> "Measurement":
        if raw is None or isinstance(raw, bool):
            return cls.unknown(raw)
        if isinstance(raw, str):
            text = raw.strip()
            if not text:
                return cls.unknown(raw)
        elif not isinstance(raw, (int, float)):
            return cls.unknown(raw)
        try:
            number = float(raw)
        except (TypeError, ValueError, OverflowError):
            return cls.unknown(raw)
        if math.isnan(number) or math.isinf(number) or number < 0:
            return cls.unknown(raw)
        if upper is not None and number > upper:
            return cls.unknown(raw)
        return cls.known(cast(number))

    @property
    def is_known(self) -> bool:
        return self.kind == self.KNOWN

    def value_or_none(self) -> Optional[float]:
        return self.value if self.is_known else None


@dataclass
class JudgeCallbackSchema(BaseSchema[None]):
    """
    判题机回调载荷：{token, status: {id, description}, time?, memory?}
    - 结构不合法统一抛 MalformedCallbackError
    - time（秒）/ memory（KB）宽松解析为 Measurement
    - 判题机附带的 stdout / stderr 等其它字段忽略
    """

    construct_error: ClassVar[type] = MalformedCallbackError

    token: Any
    status: Any
    time: Any = None
    memory: Any = None

    def validate(self) -> None:
        if not isinstance(self.token, str) or not self.token.strip():
            raise MalformedCallbackError(message="回调缺少 token")
        if not isinstance(self.status, Mapping):
            raise MalformedCallbackError(message="回调缺少 status")
        status_id = self.status.get("id")
        # 3.0 这类整值浮点数按整数接受
        if isinstance(status_id, float) and status_id.is_integer():
            status_id = int(status_id)
        if isinstance(status_id, bool) or not isinstance(status_id, int):
            raise MalformedCallbackError(message="status.id 必须是整数")
        description = self.status.get("description")
        if description is not None and not isinstance(description, str):
            raise MalformedCallbackError(message="status.description 必须是字符串")
        self.token = self.token.strip()
        self.status = {**self.status, "id": status_id}

    @property
    def status_id(self) -> int:
        return self.status["id"]

    @property
    def status_description(self) -> str:
        return (self.status.get("description") or "")[:255]

    @property
    def time_measurement(self) -> Measurement:
        return Measurement.parse(self.time)

    @property
    def memory_measurement(self) -> Measurement:
        return Measurement.parse(self.memory, cast=lambda number: int(round(number)), upper=MAX_MEMORY_KB)


@dataclass
class SubmissionListQuerySchema(BaseSchema[None]):
    """提交列表筛选：按题目 / 比赛 slug"""

    problem: Optional[str] = None
    contest: Optional[str] = None

    def validate(self) -> None:
        self.problem = (self.problem or "").strip() or None
        self.contest = (self.contest or "").strip() or None
