"""
Django settings for Config project.

所有可变配置都从环境变量读取并给出默认值，业务代码通过 getattr(settings, "NAME", default) 使用。
"""

import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-change-me")
DEBUG = _env_bool("DEBUG", False)
ALLOWED_HOSTS = [host.strip() for host in os.getenv("ALLOWED_HOSTS", "*").split(",") if host.strip()]
SITE_BRAND = os.getenv("SITE_BRAND", "Judge Arena")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "channels",
    "apps.problems",
    "apps.contests",
    "apps.submissions",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "apps.common.middleware.RequestContextMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "Config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

ASGI_APPLICATION = "Config.asgi.application"

# 数据库引擎（sqlite / postgres）：本地默认 sqlite，生产环境用 postgres 以获得行级锁
if os.getenv("DB_ENGINE", "sqlite").lower() == "sqlite":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DB_NAME", "judge"),
            "USER": os.getenv("DB_USER", "judge"),
            "PASSWORD": os.getenv("DB_PASSWORD", ""),
            "HOST": os.getenv("DB_HOST", "127.0.0.1"),
            "PORT": os.getenv("DB_PORT", "5432"),
            "CONN_MAX_AGE": _env_int("DB_CONN_MAX_AGE", 60),
        }
    }

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

LANGUAGE_CODE = "zh-hans"
TIME_ZONE = os.getenv("TIME_ZONE", "Asia/Shanghai")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ======================
# DRF / OpenAPI
# ======================

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "apps.common.exception_handler.custom_exception_handler",
    "DEFAULT_THROTTLE_RATES": {
        "code_submit": os.getenv("THROTTLE_CODE_SUBMIT", "30/min"),
    },
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Judge Arena API",
    "DESCRIPTION": "代码提交、判题回调与比赛排行榜接口",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

# ======================
# Redis / 缓存 / Channels
# ======================

REDIS_ENABLED = _env_bool("REDIS_ENABLED", True)
REDIS_HOST = os.getenv("REDIS_HOST", "127.0.0.1")
REDIS_PORT = _env_int("REDIS_PORT", 6379)
REDIS_DB_CACHE = _env_int("REDIS_DB_CACHE", 1)
REDIS_DB_BROKER = _env_int("REDIS_DB_BROKER", 0)
REDIS_DB_CHANNELS = _env_int("REDIS_DB_CHANNELS", 2)

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB_CACHE}",
    }
}

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels_redis.core.RedisChannelLayer",
        "CONFIG": {"hosts": [f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB_CHANNELS}"]},
    }
}

# ======================
# Celery
# ======================

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB_BROKER}")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_TASK_ACKS_LATE = True
CELERY_TASK_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = TIME_ZONE

# ======================
# 判题机（Judge0）
# ======================

JUDGE0_URL = os.getenv("JUDGE0_URL", "http://127.0.0.1:2358")
JUDGE0_CALLBACK_URL = os.getenv("JUDGE0_CALLBACK_URL", "")
JUDGE0_AUTH_TOKEN = os.getenv("JUDGE0_AUTH_TOKEN", "")
JUDGE0_TIMEOUT_SECONDS = _env_float("JUDGE0_TIMEOUT_SECONDS", 5)
# 回调共享密钥，未配置时拒绝所有回调
JUDGE0_CALLBACK_SECRET = os.getenv("JUDGE0_CALLBACK_SECRET", "")
JUDGE_DISPATCH_MAX_RETRIES = _env_int("JUDGE_DISPATCH_MAX_RETRIES", 3)
JUDGE_DISPATCH_BACKOFF_SECONDS = _env_float("JUDGE_DISPATCH_BACKOFF_SECONDS", 0.5)

# 数据库瞬时故障重试
STORE_MAX_RETRIES = _env_int("STORE_MAX_RETRIES", 3)
STORE_BACKOFF_SECONDS = _env_float("STORE_BACKOFF_SECONDS", 0.2)

# 提交列表分页
SUBMISSION_PAGE_SIZE = _env_int("SUBMISSION_PAGE_SIZE", 20)
SUBMISSION_MAX_PAGE_SIZE = _env_int("SUBMISSION_MAX_PAGE_SIZE", 100)

# ======================
# 排行榜 / 页面缓存失效通知
# ======================

LEADERBOARD_MAX_LIMIT = _env_int("LEADERBOARD_MAX_LIMIT", 100)
LEADERBOARD_CACHE_TTL = _env_int("LEADERBOARD_CACHE_TTL", 60)
LEADERBOARD_PUSH_TOP = _env_int("LEADERBOARD_PUSH_TOP", 20)

REVALIDATE_URL = os.getenv("REVALIDATE_URL", "")
REVALIDATE_SECRET = os.getenv("REVALIDATE_SECRET", "")
REVALIDATE_TIMEOUT_SECONDS = _env_float("REVALIDATE_TIMEOUT_SECONDS", 2)

# ======================
# 日志
# ======================

LOG_PATH = os.getenv("LOG_PATH", str(BASE_DIR / "logs"))
LOG_FORMAT = os.getenv("LOG_FORMAT", "plain")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
