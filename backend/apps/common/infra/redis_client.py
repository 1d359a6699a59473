"""
Redis 客户端封装：
- 统一读取 settings 中的 Redis 配置，提供基础的 get/set/incr/json 存取等方法
- 排行榜缓存是可丢弃的派生数据：Redis 不可用时记录警告并返回空值，上层回退到数据库直读
- REDIS_ENABLED=False 时完全跳过（测试环境）
"""

from __future__ import annotations

import json
import os
from typing import Any, Optional

import redis
from django.conf import settings

from apps.common.infra.logger import get_logger, logger_extra

_logger = get_logger(__name__)

_client: Optional[redis.Redis] = None


def _get_client() -> Optional[redis.Redis]:
    """
    获取 Redis 客户端（进程内复用连接池）；未启用时返回 None
    """
    global _client
    if not getattr(settings, "REDIS_ENABLED", True):
        return None
    if _client is None:
        _client = redis.Redis(
            host=getattr(settings, "REDIS_HOST", "127.0.0.1"),
            port=int(getattr(settings, "REDIS_PORT", 6379)),
            db=int(getattr(settings, "REDIS_DB_CACHE", 0)),
            password=os.getenv("REDIS_PASSWORD") or None,
            decode_responses=True,
            socket_connect_timeout=float(os.getenv("REDIS_CONNECT_TIMEOUT", 0.2)),
            socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", 0.5)),
        )
    return _client


def set(key: str, value: Any, ex: Optional[int] = None) -> bool:
    """设置键值，可选过期时间（秒）；失败返回 False"""
    client = _get_client()
    if client is None:
        return False
    try:
        client.set(key, value, ex=ex)
        return True
    except redis.RedisError:
        _logger.warning("Redis 写入失败，已跳过", extra=logger_extra({"key": key}), exc_info=True)
        return False


def get(key: str) -> Optional[Any]:
    """获取键值，若过期、不存在或 Redis 不可用返回 None"""
    client = _get_client()
    if client is None:
        return None
    try:
        return client.get(key)
    except redis.RedisError:
        _logger.warning("Redis 读取失败，已跳过", extra=logger_extra({"key": key}), exc_info=True)
        return None


def incr(key: str, amount: int = 1) -> Optional[int]:
    """
    原子自增，返回自增后的值；Redis 不可用时返回 None

    用于排行榜缓存版本号：版本号只增不减，旧版本的缓存自然失效
    """
    client = _get_client()
    if client is None:
        return None
    try:
        return int(client.incrby(key, amount))
    except redis.RedisError:
        _logger.warning("Redis 自增失败，已跳过", extra=logger_extra({"key": key}), exc_info=True)
        return None


def delete(*keys: str) -> None:
    """删除键，失败时跳过"""
    client = _get_client()
    if client is None or not keys:
        return
    try:
        client.delete(*keys)
    except redis.RedisError:
        _logger.warning("Redis 删除键失败，已跳过", extra=logger_extra({"keys": list(keys)}))


def set_json(key: str, data: Any, ex: Optional[int] = None) -> bool:
    """以 JSON 序列化存储数据，方便结构化缓存"""
    return set(key, json.dumps(data, default=str), ex=ex)


def get_json(key: str) -> Optional[Any]:
    """获取 JSON 数据并反序列化，失败返回 None"""
    raw = get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        _logger.warning("Redis 缓存内容无法解析，已忽略", extra=logger_extra({"key": key}))
        return None


def ping() -> Optional[bool]:
    """健康检查用：未启用返回 None，可用返回 True，故障返回 False"""
    client = _get_client()
    if client is None:
        return None
    try:
        return bool(client.ping())
    except redis.RedisError:
        return False
