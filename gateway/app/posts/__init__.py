"""
Posts Package

Local posts listing and tokenized search backed by a JSON file.

Modules:
- store: loading, normalization and search
- routes: /api/posts and /api/search endpoints
"""

from .routes import posts_router

__all__ = ["posts_router"]
