"""Vercel serverless entrypoint for the balance tracker."""

from __future__ import annotations

import sys
from pathlib import Path

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from balance_tracker.api.asgi import app  # noqa: E402

__all__ = ["app"]
