"""ASGI entrypoint for the balance tracker API."""

from balance_tracker.api.app import create_app
from balance_tracker.containers import build_container

app = create_app(build_container())
