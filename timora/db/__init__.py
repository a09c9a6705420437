# SQLAlchemy persistence
from .database import configure_database, get_engine, init_db, session_scope
from .models import Base, UserProgressRow

__all__ = [
    "Base",
    "UserProgressRow",
    "configure_database",
    "get_engine",
    "init_db",
    "session_scope",
]
