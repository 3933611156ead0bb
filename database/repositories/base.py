from sqlalchemy.ext.asyncio import async_sessionmaker

from database.database import session_scope


class BaseRepository:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    def session(self):
        """Short-lived transactional session; commits on exit, rolls back on error."""
        return session_scope(self.session_factory)
