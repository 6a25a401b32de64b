from .connection import DatabaseConnection, db_connection, get_db_connection
from .repositories import PostgresEntityStore


__all__ = [
    "DatabaseConnection",
    "db_connection",
    "get_db_connection",
    "PostgresEntityStore",
]
