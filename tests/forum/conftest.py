"""Forum test fixtures: in-memory repository and Redis fakes."""

import asyncio
import fnmatch
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest
from cassandra.cluster import Session
from redis.exceptions import ConnectionError as RedisConnectionError

from src.auth.schemas import AuthenticatedUser
from src.forum.exceptions import InternalError
from src.forum.models import ForumCategory, ForumPost, ForumReply, ReplyLookup
from src.forum.replies import ReplyTreeManager
from src.forum.service import ForumService


BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)


def build_category(category_id: str = "ccat1", **overrides) -> ForumCategory:
    data = {
        "category_id": category_id,
        "slug": "general",
        "name": "General",
        "color": "#336699",
        "is_active": True,
        "is_locked": False,
        "min_tier_to_post": "FREE",
        "min_tier_to_view": "FREE",
    }
    data.update(overrides)
    return ForumCategory(**data)


def build_post(post_id: str = "cpost1", category_id: str = "ccat1", **overrides) -> ForumPost:
    data = {
        "post_id": post_id,
        "title": "What are you reading?",
        "content": "Share your current book.",
        "category_id": category_id,
        "user_id": "cauthor",
        "author_username": "author",
        "author_display_name": "Post Author",
        "author_avatar_url": None,
        "book_id": None,
        "is_pinned": False,
        "is_locked": False,
        "is_featured": False,
        "is_answered": False,
        "upvotes": 0,
        "downvotes": 0,
        "vote_score": 0,
        "view_count": 0,
        "replies_count": 0,
        "last_reply_at": None,
        "last_reply_id": None,
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME,
        "deleted_at": None,
    }
    data.update(overrides)
    return ForumPost(**data)


def build_reply(
    reply_id: str,
    post_id: str = "cpost1",
    parent_reply_id: str | None = None,
    minutes: int = 0,
    **overrides,
) -> ForumReply:
    created_at = BASE_TIME + timedelta(minutes=minutes)
    data = {
        "reply_id": reply_id,
        "post_id": post_id,
        "user_id": "cuser1",
        "author_username": "reader",
        "author_display_name": "Reader",
        "author_avatar_url": None,
        "content": f"Reply {reply_id}",
        "parent_reply_id": parent_reply_id,
        "upvotes": 0,
        "downvotes": 0,
        "vote_score": 0,
        "is_best_answer": False,
        "created_at": created_at,
        "updated_at": created_at,
        "deleted_at": None,
    }
    data.update(overrides)
    return ForumReply(**data)


class FakeForumRepository:
    """In-memory stand-in for ForumRepository.

    Yields to the event loop on every call so concurrent writers interleave.
    """

    def __init__(self):
        self.categories: dict[str, ForumCategory] = {}
        self.posts: dict[str, ForumPost] = {}
        self.replies: dict[str, ForumReply] = {}
        self.list_posts_calls = 0
        self.fail_commit = False
        self.fail_view_count = False

    def add_category(self, category: ForumCategory) -> ForumCategory:
        self.categories[category.category_id] = category
        return category

    def add_post(self, post: ForumPost) -> ForumPost:
        self.posts[post.post_id] = post
        return post

    def add_reply(self, reply: ForumReply) -> ForumReply:
        self.replies[reply.reply_id] = reply
        return reply

    async def get_category(self, category_id):
        await asyncio.sleep(0)
        return self.categories.get(category_id)

    async def get_category_by_slug(self, slug):
        await asyncio.sleep(0)
        for category in self.categories.values():
            if category.slug == slug:
                return category
        return None

    async def list_categories(self):
        await asyncio.sleep(0)
        return list(self.categories.values())

    async def get_post(self, post_id):
        await asyncio.sleep(0)
        post = self.posts.get(post_id)
        if post is None:
            return None
        # Return a copy like a fresh row read
        return ForumPost(**vars(post))

    async def list_posts(self, category_id=None, limit=1000):
        await asyncio.sleep(0)
        self.list_posts_calls += 1
        posts = [
            ForumPost(**vars(p))
            for p in self.posts.values()
            if category_id is None or p.category_id == category_id
        ]
        return posts[:limit]

    async def update_view_count(self, post_id, view_count):
        await asyncio.sleep(0)
        if self.fail_view_count:
            raise InternalError("Storage operation failed")
        self.posts[post_id].view_count = view_count

    async def get_reply_lookup(self, reply_id):
        await asyncio.sleep(0)
        reply = self.replies.get(reply_id)
        if reply is None:
            return None
        return ReplyLookup(
            reply_id=reply.reply_id,
            post_id=reply.post_id,
            parent_reply_id=reply.parent_reply_id,
            user_id=reply.user_id,
            created_at=reply.created_at,
            deleted_at=reply.deleted_at,
        )

    async def list_replies(self, post_id):
        await asyncio.sleep(0)
        replies = [r for r in self.replies.values() if r.post_id == post_id]
        return sorted(replies, key=lambda r: (r.created_at, r.reply_id))

    async def commit_reply(self, reply, replies_count):
        await asyncio.sleep(0)
        if self.fail_commit:
            raise InternalError("Storage operation failed")
        self.replies[reply.reply_id] = reply
        post = self.posts[reply.post_id]
        post.replies_count = replies_count
        post.last_reply_at = reply.created_at
        post.last_reply_id = reply.reply_id

    async def commit_reply_deletion(
        self, reply, deleted_at, replies_count, last_reply_at, last_reply_id
    ):
        await asyncio.sleep(0)
        if self.fail_commit:
            raise InternalError("Storage operation failed")
        self.replies[reply.reply_id].deleted_at = deleted_at
        post = self.posts[reply.post_id]
        post.replies_count = replies_count
        post.last_reply_at = last_reply_at
        post.last_reply_id = last_reply_id


class FakeLock:
    def __init__(self, redis: "FakeRedis", name: str):
        self.redis = redis
        self.name = name

    async def acquire(self) -> bool:
        if not self.redis.lock_available:
            return False
        # Hold this caller back so a later caller wins the lock
        if self.redis.acquire_delays:
            for _ in range(self.redis.acquire_delays.pop(0)):
                await asyncio.sleep(0)
        await self.redis.locks.setdefault(self.name, asyncio.Lock()).acquire()
        self.redis.acquired.append(self.name)
        return True

    async def release(self) -> None:
        self.redis.locks[self.name].release()
        if self.redis.fail_release:
            raise RedisConnectionError("Connection reset by peer")


class FakeRedis:
    """Subset of redis.asyncio.Redis used by the forum."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.locks: dict[str, asyncio.Lock] = {}
        self.acquired: list[str] = []
        self.lock_available = True
        self.fail_release = False
        self.acquire_delays: list[int] = []

    def lock(self, name, timeout=None, blocking_timeout=None):
        return FakeLock(self, name)

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def scan_iter(self, match=None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatch(key, match):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)
        return len(keys)


@pytest.fixture
def repository() -> FakeForumRepository:
    repo = FakeForumRepository()
    repo.add_category(build_category())
    repo.add_post(build_post())
    return repo


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def manager(repository: FakeForumRepository, fake_redis: FakeRedis) -> ReplyTreeManager:
    return ReplyTreeManager(repository, fake_redis, max_depth=5, lock_timeout=1.0)


@pytest.fixture
def forum_service(
    repository: FakeForumRepository, fake_redis: FakeRedis
) -> ForumService:
    """ForumService wired to the in-memory fakes."""
    mock_session = Mock(spec=Session)
    mock_session.prepare = Mock(return_value=Mock())
    service = ForumService(session=mock_session, keyspace="test_keyspace", redis=fake_redis)
    service.repository = repository
    service.replies = ReplyTreeManager(repository, fake_redis, max_depth=5)
    return service


@pytest.fixture
def reader() -> AuthenticatedUser:
    return AuthenticatedUser(
        id="cuser1",
        username="reader",
        display_name="Reader",
        avatar_url="https://cdn.example.com/reader.png",
        tier="FREE",
        role="user",
    )


@pytest.fixture
def other_reader() -> AuthenticatedUser:
    return AuthenticatedUser(id="cuser2", username="other", tier="PRO", role="user")


@pytest.fixture
def moderator() -> AuthenticatedUser:
    return AuthenticatedUser(id="cmod1", username="mod", tier="FREE", role="moderator")


@pytest.fixture
def make_category():
    return build_category


@pytest.fixture
def make_post():
    return build_post


@pytest.fixture
def make_reply():
    return build_reply
