"""
时间工具：统一使用感知时区的时间
"""

from __future__ import annotations

import datetime
from typing import Optional


def now() -> datetime.datetime:
    """返回当前 UTC 时间（感知时区）"""
    return datetime.datetime.now(datetime.timezone.utc)


def isoformat(dt: Optional[datetime.datetime]) -> Optional[str]:
    """序列化时间字段；缺省时区则补齐 UTC，None 原样返回"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.isoformat()
