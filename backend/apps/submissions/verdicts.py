"""
判题状态机（纯函数部分）：
- Judge0 状态 ID → 内部状态的映射表，任何未知 ID 都落到 internal_error
- 终态集合与“是否允许推进”的判定
- 实际的数据库条件更新在 services.VerdictService 中完成
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .models import Submission

Status = Submission.Status

#: Judge0 status.id → 内部状态
JUDGE0_STATUS_MAP: dict[int, str] = {
    1: Status.QUEUED,  # In Queue
    2: Status.RUNNING,  # Processing
    3: Status.ACCEPTED,
    4: Status.WRONG_ANSWER,
    5: Status.TIME_LIMIT_EXCEEDED,
    6: Status.COMPILE_ERROR,
    7: Status.RUNTIME_ERROR,  # SIGSEGV
    8: Status.RUNTIME_ERROR,  # SIGXFSZ
    9: Status.RUNTIME_ERROR,  # SIGFPE
    10: Status.RUNTIME_ERROR,  # SIGABRT
    11: Status.RUNTIME_ERROR,  # NZEC
    12: Status.RUNTIME_ERROR,  # Other
    13: Status.INTERNAL_ERROR,
    14: Status.RUNTIME_ERROR,  # Exec Format Error
}

NON_TERMINAL: frozenset[str] = frozenset({Status.QUEUED, Status.RUNNING})
TERMINAL: frozenset[str] = frozenset(value for value in Status.values if value not in NON_TERMINAL)

# 非终态之间只能按此顺序前进
_PROGRESS = {Status.QUEUED: 0, Status.RUNNING: 1}


class Outcome(str, Enum):
    """一次状态转移请求的结果"""

    APPLIED = "applied"
    ALREADY_TERMINAL = "already_terminal"
    STALE = "stale"  # 非终态上报，且没有让状态前进


def resolve_status(judge0_id: int, description: Optional[str] = None) -> str:
    """
    Judge0 状态 → 内部状态（全映射）

    Judge0 没有独立的内存超限状态，描述里带 "memory limit" 的结果单独识别为 memory_limit_exceeded
    """
    status = JUDGE0_STATUS_MAP.get(judge0_id, Status.INTERNAL_ERROR)
    if status in TERMINAL and status != Status.ACCEPTED and description and "memory limit" in description.lower():
        return Status.MEMORY_LIMIT_EXCEEDED
    return status


def is_terminal(status: str) -> bool:
    return status in TERMINAL


def can_advance(current: str, target: str) -> bool:
    """current → target 是否是合法的前进"""
    if current in TERMINAL:
        return False
    if target in TERMINAL:
        return True
    return _PROGRESS[target] > _PROGRESS[current]


def public_status(status: str) -> str:
    """对外展示状态：非终态一律显示为 pending"""
    return status if status in TERMINAL else "pending"
