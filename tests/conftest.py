"""Root conftest - in-memory store, services and an authenticated HTTP client.

Invariants:
    - Every test gets a fresh InMemoryEntityStore
    - Redis and Kafka are disabled, so cache and producer are no-ops
    - get_store dependency overridden to return the test store
    - Tokens are real HS256 JWTs signed with the configured secret
"""

import os

os.environ["STORE_BACKEND"] = "memory"
os.environ["REDIS_ENABLED"] = "false"
os.environ["KAFKA_ENABLED"] = "false"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from social_service.config import settings
from social_service.dependencies import get_store
from social_service.infrastructure.cache import RedisCache
from social_service.infrastructure.kafka_producer import KafkaProducerManager
from social_service.infrastructure.memory import InMemoryEntityStore
from social_service.application.graph import GraphResolver
from social_service.application.feed import FeedAssembler
from social_service.application.posts import PostService
from social_service.application.connections import ConnectionWorkflow
from social_service.application.discovery import DiscoveryEngine
from social_service.application.messaging import MessagingService
from social_service.application.profiles import ProfileService
from social_service.main import app


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def cache():
    return RedisCache()


@pytest.fixture
def kafka():
    return KafkaProducerManager()


@pytest.fixture
def graph(store):
    return GraphResolver(store)


@pytest.fixture
def feed(store, graph):
    return FeedAssembler(store, graph)


@pytest.fixture
def posts(store, kafka):
    return PostService(store, kafka)


@pytest.fixture
def workflow(store, graph, cache, kafka):
    return ConnectionWorkflow(store, graph, cache, kafka)


@pytest.fixture
def discovery(store, graph):
    return DiscoveryEngine(store, graph)


@pytest.fixture
def messaging(store, graph, kafka):
    return MessagingService(store, graph, kafka)


@pytest.fixture
def profiles(store, graph, feed, cache):
    return ProfileService(store, graph, feed, cache)


@pytest.fixture
def make_user(store):
    """Factory creating users with unique handles."""
    async def _make(handle, name=None, **kwargs):
        return await store.create_user(name or handle.title(), handle, **kwargs)
    return _make


@pytest.fixture
def pinned_calls(monkeypatch):
    """Record (method, ran on a transaction store) for the named store methods."""
    calls = []

    def _watch(*names):
        for name in names:
            original = getattr(InMemoryEntityStore, name)

            def recorded(self, *args, _name=name, _original=original, **kwargs):
                calls.append((_name, self.pinned))
                return _original(self, *args, **kwargs)

            monkeypatch.setattr(InMemoryEntityStore, name, recorded)
        return calls
    return _watch


@pytest.fixture
async def alice(make_user):
    return await make_user("alice")


@pytest.fixture
async def bob(make_user):
    return await make_user("bob")


@pytest.fixture
async def carol(make_user):
    return await make_user("carol")


def make_token(user_id):
    return jwt.encode({"sub": str(user_id)}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth():
    """Authorization header for a user."""
    def _auth(user):
        return {"Authorization": f"Bearer {make_token(user.id)}"}
    return _auth


@pytest.fixture
async def client(store):
    """FastAPI test client with the store dependency overridden."""
    async def override_get_store():
        return store

    app.dependency_overrides[get_store] = override_get_store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
