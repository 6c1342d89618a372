"""
WebSocket URL routing for island streams.

Example::

    from channels.routing import ProtocolTypeRouter, URLRouter
    from island_streams.routing import websocket_urlpatterns

    application = ProtocolTypeRouter({
        "http": get_asgi_application(),
        "websocket": URLRouter(websocket_urlpatterns),
    })
"""

from django.urls import path, re_path

from .consumer import IslandStreamConsumer

websocket_urlpatterns = [
    re_path(r"^ws/islands/(?P<channel>[A-Za-z0-9_.\-]+)/$", IslandStreamConsumer.as_asgi()),
    path("ws/islands/", IslandStreamConsumer.as_asgi()),
]
