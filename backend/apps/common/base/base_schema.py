# apps/common/base/base_schema.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Dict, Generic, Iterable, Mapping, Optional, TypeVar

from apps.common.exceptions import BizError, ValidationError

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound="BaseSchema[Any]")


@dataclass
class BaseSchema(ABC, Generic[T]):
    """
    业务 Schema / DTO 基类

    目的：
        - 用于 Service 层在外部输入（提交表单、判题回调）与业务逻辑之间传递结构化数据；
        - 聚合字段校验逻辑，替代零散的 serializer 校验；

    子类示例：
        @dataclass
        class SubmissionCreateSchema(BaseSchema):
            problem: str
            language: str

            def validate(self):
                if not self.problem:
                    raise ValidationError("题目不能为空")
    """

    #: 是否在 __post_init__ 中自动执行 validate
    auto_validate: ClassVar[bool] = False
    #: 字段别名映射：外部字段名（如 camelCase）→ 内部字段名
    ALIASES: ClassVar[dict[str, str]] = {}
    #: 构造失败（缺字段/多字段）时抛出的错误类型，子类可覆盖
    construct_error: ClassVar[type[BizError]] = ValidationError

    def __post_init__(self):
        if self.auto_validate:
            self.validate()

    @abstractmethod
    def validate(self) -> None:
        """子类实现字段/业务约束校验，出错时抛 BizError"""

    def to_dict(
            self,
            *,
            exclude_none: bool = False,
            exclude: Iterable[str] | None = None,
    ) -> Dict[str, Any]:
        """将 Schema 转为 dict，支持过滤 None 或移除指定字段"""
        data = asdict(self)
        if exclude_none:
            data = {key: value for key, value in data.items() if value is not None}
        if exclude:
            for key in exclude:
                data.pop(key, None)
        return data

    @classmethod
    def from_dict(
            cls: type[SchemaType],
            data: Mapping[str, Any],
            *,
            auto_validate: Optional[bool] = None,
    ) -> SchemaType:
        """
        将外部 payload 转为 Schema；auto_validate 控制是否立即校验

        - 非 Mapping 输入、缺少必填字段 → construct_error
        - 未声明的多余字段直接忽略（判题机可能附带额外字段）
        """
        if not isinstance(data, Mapping):
            raise cls.construct_error("请求体必须是 JSON 对象")
        normalized = dict(data)
        for alias, target in cls.ALIASES.items():
            if alias in normalized and target not in normalized:
                normalized[target] = normalized.pop(alias)
            elif alias in normalized:
                normalized.pop(alias)

        known = {f.name for f in fields(cls) if f.init}
        kwargs = {key: value for key, value in normalized.items() if key in known}
        try:
            instance = cls(**kwargs)  # type: ignore[arg-type]
        except TypeError as exc:
            raise cls.construct_error(extra={"detail": str(exc)}) from exc
        if auto_validate or (auto_validate is None and cls.auto_validate):
            instance.validate()
        return instance
