"""
测试配置：SQLite 文件库（可切换 postgres）、Celery 同步执行、内存 Channel Layer、本地内存缓存，不依赖外部服务
"""

import os
import tempfile

from .settings import *  # noqa: F401,F403

DEBUG = False

# 并发用例的多个线程共享同一个测试库文件
# DB_ENGINE=postgres 时沿用 settings 中的 postgres 配置，测试库由 Django 自动创建
if os.getenv("DB_ENGINE", "sqlite").lower() == "sqlite":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.path.join(tempfile.gettempdir(), "judge_arena.sqlite3"),
            "OPTIONS": {"timeout": 20, "transaction_mode": "IMMEDIATE"},
            "TEST": {"NAME": os.path.join(tempfile.gettempdir(), "judge_arena_test.sqlite3")},
        }
    }

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "judge-tests",
    }
}

CHANNEL_LAYERS = {
    "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
}

# Redis 关闭：排行榜直接查库，测试中按需 mock redis 客户端
REDIS_ENABLED = False

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

JUDGE0_URL = "http://judge0.test"
JUDGE0_CALLBACK_URL = "http://backend.test/api/submissions/callback/"
JUDGE0_CALLBACK_SECRET = "test-callback-secret-0123456789"
JUDGE_DISPATCH_MAX_RETRIES = 3
JUDGE_DISPATCH_BACKOFF_SECONDS = 0
STORE_MAX_RETRIES = 2
STORE_BACKOFF_SECONDS = 0

REVALIDATE_URL = ""
LEADERBOARD_CACHE_TTL = 60

LOG_PATH = tempfile.mkdtemp(prefix="judge-logs-")

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_RATES": {"code_submit": "1000/min"},
}
