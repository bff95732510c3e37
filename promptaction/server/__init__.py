"""HTTP surface: POST /ai, POST /ai/stream (SSE) and GET /health."""

from .app import create_app

__all__ = ["create_app"]
