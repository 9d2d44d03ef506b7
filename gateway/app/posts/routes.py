"""
Posts Routes
============

Read-only listing and search over the local posts file.

Endpoints:
----------
- GET  /api/posts           : every post
- GET  /api/search?q=...    : tokenized search
- POST /api/search {"q": ...}: same search, query in the JSON body
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from ..models import PostListResponse, SearchRequest
from .store import load_posts, search_posts

logger = logging.getLogger(__name__)

posts_router = APIRouter(prefix="/api")


def get_posts_path(request: Request) -> str:
    """Dependency resolving the posts file from the settings held in app state."""
    return request.app.state.app_state.settings.POSTS_DATA_PATH


@posts_router.get("/posts", response_model=PostListResponse)
async def list_posts(posts_path: str = Depends(get_posts_path)):
    return PostListResponse(items=load_posts(posts_path))


@posts_router.get("/search", response_model=PostListResponse)
async def search(q: Optional[str] = None, posts_path: str = Depends(get_posts_path)):
    """Search posts by the `q` query parameter."""
    return _run_search(q, posts_path)


@posts_router.post("/search", response_model=PostListResponse)
async def search_by_body(
    payload: Optional[SearchRequest] = None,
    posts_path: str = Depends(get_posts_path),
):
    """Search posts by the `q` field of the JSON body."""
    return _run_search(payload.q if payload else None, posts_path)


def _run_search(query: Optional[str], posts_path: str) -> PostListResponse:
    query = (query or "").strip()
    if not query:
        return PostListResponse(items=[])

    items = search_posts(load_posts(posts_path), query)
    logger.info("Posts search", extra={"token_count": len(query.split()), "results": len(items)})
    return PostListResponse(items=items)
