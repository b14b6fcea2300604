"""ASGI entrypoint for the dish discovery API."""

from dish_discovery.api.app import create_app
from dish_discovery.containers import build_container

app = create_app(build_container())
