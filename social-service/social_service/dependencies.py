"""
FastAPI dependencies for authentication and service wiring
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from typing import Optional
import logging

from .config import settings
from .schemas import CurrentUser
from .domain.repositories import IEntityStore
from .infrastructure.cache import RedisCache, get_cache
from .infrastructure.kafka_producer import KafkaProducerManager, get_kafka_producer
from .infrastructure.database.connection import db_connection
from .infrastructure.database.repositories import PostgresEntityStore
from .infrastructure.memory import InMemoryEntityStore
from .application.graph import GraphResolver
from .application.feed import FeedAssembler
from .application.posts import PostService
from .application.connections import ConnectionWorkflow
from .application.discovery import DiscoveryEngine
from .application.messaging import MessagingService
from .application.profiles import ProfileService

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def build_store() -> IEntityStore:
    """Create the entity store selected by STORE_BACKEND"""
    if settings.STORE_BACKEND == "memory":
        logger.info("Using in-memory entity store")
        return InMemoryEntityStore()
    return PostgresEntityStore(db_connection)


# Global store instance
store = build_store()


async def get_store() -> IEntityStore:
    """Dependency for getting the entity store"""
    return store


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Validate JWT token and return the caller identity

    Tokens are issued by the identity collaborator; only the signature and
    the subject claim are checked here.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser(id=user_id)


def get_graph_resolver(store: IEntityStore = Depends(get_store)) -> GraphResolver:
    return GraphResolver(store)


def get_feed_assembler(
    store: IEntityStore = Depends(get_store),
    graph: GraphResolver = Depends(get_graph_resolver),
) -> FeedAssembler:
    return FeedAssembler(store, graph)


def get_post_service(
    store: IEntityStore = Depends(get_store),
    kafka: KafkaProducerManager = Depends(get_kafka_producer),
) -> PostService:
    return PostService(store, kafka)


def get_connection_workflow(
    store: IEntityStore = Depends(get_store),
    graph: GraphResolver = Depends(get_graph_resolver),
    cache: RedisCache = Depends(get_cache),
    kafka: KafkaProducerManager = Depends(get_kafka_producer),
) -> ConnectionWorkflow:
    return ConnectionWorkflow(store, graph, cache, kafka)


def get_discovery_engine(
    store: IEntityStore = Depends(get_store),
    graph: GraphResolver = Depends(get_graph_resolver),
) -> DiscoveryEngine:
    return DiscoveryEngine(store, graph)


def get_messaging_service(
    store: IEntityStore = Depends(get_store),
    graph: GraphResolver = Depends(get_graph_resolver),
    kafka: KafkaProducerManager = Depends(get_kafka_producer),
) -> MessagingService:
    return MessagingService(store, graph, kafka)


def get_profile_service(
    store: IEntityStore = Depends(get_store),
    graph: GraphResolver = Depends(get_graph_resolver),
    feed: FeedAssembler = Depends(get_feed_assembler),
    cache: RedisCache = Depends(get_cache),
) -> ProfileService:
    return ProfileService(store, graph, feed, cache)
