"""ASGI entrypoint for the meal signals API."""

from meal_signals.api.app import create_app
from meal_signals.containers import build_container

app = create_app(build_container())
