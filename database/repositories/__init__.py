from database.repositories.base import BaseRepository
from database.repositories.match import MatchRepository, Page
from database.repositories.audit import AuditRepository

__all__ = [
    'BaseRepository',
    'MatchRepository',
    'Page',
    'AuditRepository',
]
