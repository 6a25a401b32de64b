from .routes import (
    users_router,
    people_router,
    graph_router,
    posts_router,
    messages_router,
)


__all__ = [
    "users_router",
    "people_router",
    "graph_router",
    "posts_router",
    "messages_router",
]
