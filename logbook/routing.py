from django.urls import path

from .consumers import AdminFeedConsumer

websocket_urlpatterns = [
    path("ws/admin/feed/", AdminFeedConsumer.as_asgi()),
]
