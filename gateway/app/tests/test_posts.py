"""
Posts Search Tests

Tests loading/normalizing the posts file, tokenized search,
and the /api/posts and /api/search endpoints.
"""

import json

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from gateway.app.config import Settings
from gateway.app.main import create_app
from gateway.app.models import Post
from gateway.app.posts.store import load_posts, normalize_post, search_posts


SAMPLE_POSTS = [
    {"id": "p1", "title": "Skin care after surgery", "tags": ["skin", "recovery"], "link": "/forum/p1"},
    {"title": "Travelling with a pouch", "tags": "travel, tips", "link": "/forum/p2"},
    {"title": "Diet questions and answers for the first month"},
    "not a post",
]


@pytest.fixture
def posts_file(tmp_path):
    """Write SAMPLE_POSTS to a temporary JSON file"""
    path = tmp_path / "posts.json"
    path.write_text(json.dumps(SAMPLE_POSTS), encoding="utf-8")
    return path


@pytest.fixture
def client(posts_file):
    settings = Settings(_env_file=None, POSTS_DATA_PATH=str(posts_file))
    return TestClient(create_app(settings))


# ============================================================================
# Store Tests
# ============================================================================

def test_normalize_post_falls_back_for_id():
    assert normalize_post({"id": "x", "title": "t"}).id == "x"
    assert normalize_post({"title": "t", "link": "/l"}).id == "/l"
    assert normalize_post({"title": "A rather long title for a forum post"}).id == "A rather long title for "


def test_load_posts_normalizes_tags(posts_file):
    posts = load_posts(posts_file)

    assert len(posts) == 3
    assert posts[0] == Post(id="p1", title="Skin care after surgery", tags="skin, recovery", link="/forum/p1")
    assert posts[1].tags == "travel, tips"
    assert posts[2].link == ""


def test_load_posts_missing_file_returns_empty(tmp_path):
    assert load_posts(tmp_path / "missing.json") == []


def test_load_posts_malformed_file_returns_empty(tmp_path):
    path = tmp_path / "posts.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_posts(path) == []


def test_search_requires_every_token(posts_file):
    posts = load_posts(posts_file)

    assert [p.id for p in search_posts(posts, "skin")] == ["p1"]
    assert [p.id for p in search_posts(posts, "SKIN Recovery")] == ["p1"]
    assert search_posts(posts, "skin travel") == []
    assert [p.id for p in search_posts(posts, "forum")] == ["p1", "/forum/p2"]


def test_empty_query_matches_nothing(posts_file):
    posts = load_posts(posts_file)

    assert search_posts(posts, "") == []
    assert search_posts(posts, "   ") == []


# ============================================================================
# Endpoint Tests
# ============================================================================

def test_list_posts(client):
    response = client.get("/api/posts")

    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()["items"]) == 3


def test_search_by_query_parameter(client):
    response = client.get("/api/search", params={"q": "pouch"})

    assert response.status_code == status.HTTP_200_OK
    assert [item["id"] for item in response.json()["items"]] == ["/forum/p2"]


def test_search_by_json_body(client):
    response = client.post("/api/search", json={"q": "diet month"})

    assert response.status_code == status.HTTP_200_OK
    items = response.json()["items"]
    assert len(items) == 1
    assert items[0]["title"].startswith("Diet questions")


def test_search_without_query_returns_no_items(client):
    assert client.get("/api/search").json() == {"items": []}
    assert client.post("/api/search", json={}).json() == {"items": []}
