# Database Connection and Base Models

from royalty_engine.db.base import Base
from royalty_engine.db.session import get_async_engine, get_async_session, get_async_session_maker

__all__ = ["Base", "get_async_engine", "get_async_session", "get_async_session_maker"]
