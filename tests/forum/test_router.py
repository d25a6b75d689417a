"""Tests for the forum HTTP routes."""

from datetime import UTC, datetime
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.auth.security import create_access_token
from src.forum.exceptions import ForbiddenError, InternalError, NotFoundError
from src.forum.schemas import (
    CreateReplyResponse,
    ForumPostsResponse,
    MessageResponse,
    PaginationInfo,
    ReplyResponse,
    UserInfo,
)
from src.forum.service import ForumService


NOW = datetime(2026, 1, 1, tzinfo=UTC)


def _auth(sub: str = "cuser1", tier: str = "FREE", role: str = "user") -> dict[str, str]:
    token = create_access_token(
        {"sub": sub, "tier": tier, "role": role, "username": "reader"}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def service(app: FastAPI) -> Mock:
    service = Mock(spec=ForumService)
    app.state.forum_service = service
    return service


def _reply() -> ReplyResponse:
    return ReplyResponse(
        id="creply1",
        post_id="cpost1",
        content="Nice post",
        user_id="cuser1",
        user=UserInfo(id="cuser1", username="reader"),
        created_at=NOW,
        updated_at=NOW,
    )


class TestAuthAndAvailability:
    def test_service_unavailable(self, client: TestClient):
        response = client.get("/v1/forum/posts", headers=_auth())

        assert response.status_code == 503
        assert response.json()["message"] == "Forum service not available"

    def test_missing_token(self, client: TestClient, service):
        response = client.get("/v1/forum/posts")

        assert response.status_code == 401
        assert response.json()["message"] == "Access token not provided"

    def test_invalid_token(self, client: TestClient, service):
        response = client.get(
            "/v1/forum/posts", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"


class TestListPosts:
    def test_passes_query_and_viewer(self, client: TestClient, service):
        service.list_posts.return_value = ForumPostsResponse(
            posts=[],
            pagination=PaginationInfo(
                page=2, limit=10, total=0, total_pages=0, has_more=False
            ),
        )

        response = client.get(
            "/v1/forum/posts?page=2&limit=10&sortBy=top",
            headers=_auth(tier="PRO"),
        )

        assert response.status_code == 200
        assert response.json()["pagination"]["totalPages"] == 0
        raw_query, viewer = service.list_posts.call_args.args
        assert raw_query == {"page": "2", "limit": "10", "sortBy": "top"}
        assert viewer.id == "cuser1"
        assert viewer.tier == "PRO"

    def test_unknown_slug(self, client: TestClient, service):
        service.list_posts.side_effect = NotFoundError("Category not found")

        response = client.get("/v1/forum/posts?categorySlug=nope", headers=_auth())

        assert response.status_code == 404
        assert response.json()["message"] == "Category not found"


class TestGetPost:
    def test_not_found(self, client: TestClient, service):
        service.get_post.side_effect = NotFoundError("Post not found")

        response = client.get("/v1/forum/posts/cmissing", headers=_auth())

        assert response.status_code == 404

    def test_forbidden(self, client: TestClient, service):
        service.get_post.side_effect = ForbiddenError(
            "This category requires PRO tier or higher"
        )

        response = client.get("/v1/forum/posts/cpost1", headers=_auth())

        assert response.status_code == 403


class TestCreateReply:
    def test_created(self, client: TestClient, service):
        service.create_reply.return_value = CreateReplyResponse(reply=_reply())

        response = client.post(
            "/v1/forum/posts/cpost1/replies",
            json={"content": "Nice post", "parentReplyId": "cparent1"},
            headers=_auth(),
        )

        assert response.status_code == 201
        data = response.json()["reply"]
        assert data["postId"] == "cpost1"
        assert data["user"]["username"] == "reader"
        assert data["replies"] == []
        post_id, _viewer, body = service.create_reply.call_args.args
        assert post_id == "cpost1"
        assert body.parent_reply_id == "cparent1"

    def test_missing_content(self, client: TestClient, service):
        response = client.post(
            "/v1/forum/posts/cpost1/replies", json={}, headers=_auth()
        )

        assert response.status_code == 400
        service.create_reply.assert_not_called()

    def test_malformed_parent_id(self, client: TestClient, service):
        response = client.post(
            "/v1/forum/posts/cpost1/replies",
            json={"content": "hi", "parentReplyId": "../etc"},
            headers=_auth(),
        )

        assert response.status_code == 400

    def test_storage_failure_hides_details(self, client: TestClient, service):
        service.create_reply.side_effect = InternalError("Storage operation failed")

        response = client.post(
            "/v1/forum/posts/cpost1/replies",
            json={"content": "hi"},
            headers=_auth(),
        )

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"


class TestDeleteReply:
    def test_deleted(self, client: TestClient, service):
        service.delete_reply.return_value = MessageResponse(message="Reply deleted")

        response = client.delete("/v1/forum/replies/creply1", headers=_auth())

        assert response.status_code == 200
        assert response.json() == {"message": "Reply deleted", "success": True}

    def test_not_author(self, client: TestClient, service):
        service.delete_reply.side_effect = ForbiddenError(
            "You can only delete your own replies"
        )

        response = client.delete("/v1/forum/replies/creply1", headers=_auth())

        assert response.status_code == 403
