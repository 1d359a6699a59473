# apps/common/base/base_service.py

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from django.conf import settings
from django.db import InterfaceError, OperationalError, transaction

from apps.common.exceptions import BizError, TransientStoreError
from apps.common.infra.logger import get_logger, logger_extra

logger = get_logger(__name__)

ServiceReturn = TypeVar("ServiceReturn")

#: 视为“可重试”的数据库瞬时异常（连接断开、锁等待超时、死锁回滚等）
TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError)


class BaseService(ABC, Generic[ServiceReturn]):
    """
    Service 层业务逻辑基类

    约束：
        - 负责编排业务逻辑，不直接处理 HTTP
        - 使用普通 Python 参数，避免依赖 request
        - 通过仓储/Repo 访问持久化层，避免散乱 ORM 调用
        - 默认在事务中执行 `perform`
        - 预期内的业务失败使用 BizError；系统异常向上抛出交由全局 500 处理

    标准流程：validate(...) -> perform(...) -> handle_error(...)

    瞬时存储故障：
        - store_retries > 0 时，整段事务遇到 OperationalError/InterfaceError 会整体回滚后重试；
        - 重试发生在事务之外，不会在部分提交的事务里重放；
        - 重试耗尽抛 TransientStoreError（503），调用方可以安全重试
    """

    atomic_enabled: bool = True
    atomic_savepoint: bool = True
    #: 瞬时存储故障的重试次数；None 表示读取 settings.STORE_MAX_RETRIES
    store_retries: int | None = 0

    @staticmethod
    def atomic(*args, **kwargs):
        """为子类提供 `transaction.atomic` 上下文管理器"""
        return transaction.atomic(*args, **kwargs)

    def validate(self, *args, **kwargs) -> None:
        """可选的业务预检查钩子（权限、状态等），默认空实现"""
        return None

    @abstractmethod
    def perform(self, *args, **kwargs) -> ServiceReturn:
        """子类必须实现的业务核心逻辑"""

    def _max_store_retries(self) -> int:
        if self.store_retries is None:
            return int(getattr(settings, "STORE_MAX_RETRIES", 3))
        return self.store_retries

    def _run_once(self, *args, **kwargs) -> ServiceReturn:
        if self.atomic_enabled:
            with self.atomic(savepoint=self.atomic_savepoint):
                return self.perform(*args, **kwargs)
        return self.perform(*args, **kwargs)

    def _run_with_store_retry(self, *args, **kwargs) -> ServiceReturn:
        max_retries = self._max_store_retries()
        backoff = float(getattr(settings, "STORE_BACKOFF_SECONDS", 0.2))
        attempt = 0
        while True:
            try:
                return self._run_once(*args, **kwargs)
            except TRANSIENT_DB_ERRORS as exc:
                # 外层仍有事务时无法安全重放，原样抛给外层回滚后重试
                if transaction.get_connection().in_atomic_block:
                    raise
                if attempt >= max_retries:
                    logger.warning(
                        "数据库瞬时故障，放弃重试",
                        extra=logger_extra({
                            "service": self.__class__.__name__,
                            "attempt": attempt,
                            "error": str(exc),
                        }),
                    )
                    raise TransientStoreError() from exc
                attempt += 1
                logger.info(
                    "数据库瞬时故障，准备重试",
                    extra=logger_extra({
                        "service": self.__class__.__name__,
                        "attempt": attempt,
                        "error": str(exc),
                    }),
                )
                time.sleep(backoff * attempt)

    def execute(self, *args, **kwargs) -> ServiceReturn:
        """Service 对外的统一入口，封装标准流程"""
        try:
            self.validate(*args, **kwargs)
            return self._run_with_store_retry(*args, **kwargs)
        except Exception as exc:
            return self.handle_error(exc)

    __call__ = execute

    def handle_error(self, exc: Exception) -> ServiceReturn:
        """业务错误继续抛出 BizError，系统异常记录日志后向上抛出交由全局异常处理器"""
        if isinstance(exc, (BizError, *TRANSIENT_DB_ERRORS)):
            raise exc
        logger.exception("Service 层出现未捕获的系统异常，向上抛出以按 500 处理", exc_info=exc)
        raise exc
