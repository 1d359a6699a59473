from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from apps.common.base.base_schema import BaseSchema
from apps.common.exceptions import ValidationError

# Schema 层：定义比赛相关入参结构与校验逻辑


@dataclass
class LeaderboardQuerySchema(BaseSchema):
    """
    排行榜查询参数：
    - limit 可选，必须是正整数；超出上限由服务层截断
    """

    contest_slug: str
    limit: Optional[Any] = None

    def validate(self) -> None:
        if not self.contest_slug:
            raise ValidationError(message="缺少比赛标识")
        if self.limit in (None, ""):
            self.limit = None
            return
        try:
            value = int(self.limit)
        except (TypeError, ValueError) as exc:
            raise ValidationError(message="limit 必须是整数") from exc
        if value < 1:
            raise ValidationError(message="limit 必须大于 0")
        self.limit = value
