"""
ASGI config for Config project.

It exposes the ASGI callable as a module-level variable named ``application``.

For more information on this file, see
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'Config.settings')

from django.core.asgi import get_asgi_application
from channels.routing import ProtocolTypeRouter, URLRouter
from channels.auth import AuthMiddlewareStack

# 先初始化 Django，确保 AppRegistry 就绪
django_application = get_asgi_application()

# WebSocket 路由延后加载以避免 AppRegistryNotReady
from Config.routing import websocket_urlpatterns  # noqa: E402

# HTTP 由 Django 处理；WebSocket 走会话认证（排行榜通道本身不要求登录）
application = ProtocolTypeRouter({
    "http": django_application,
    "websocket": AuthMiddlewareStack(
        URLRouter(websocket_urlpatterns)
    ),
})
