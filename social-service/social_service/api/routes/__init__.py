from .users import router as users_router
from .people import router as people_router
from .graph import router as graph_router
from .posts import router as posts_router
from .messages import router as messages_router


__all__ = [
    # users.py
    "users_router",
    # people.py
    "people_router",
    # graph.py
    "graph_router",
    # posts.py
    "posts_router",
    # messages.py
    "messages_router",
]
