from sqlalchemy import Column, TIMESTAMP, ForeignKey, Boolean, Integer, Numeric, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID

from .base import Base


class MatchScore(Base):
    """
    Computed compatibility between one worker and one vacancy.

    One row per (worker_id, vacancy_id). Rows are upserted on every
    recalculation of the pair and never versioned.
    """
    __tablename__ = 'match_score'

    worker_id = Column(UUID(as_uuid=False), ForeignKey('worker_profile.user_id', ondelete='CASCADE'), primary_key=True)
    vacancy_id = Column(UUID(as_uuid=False), ForeignKey('vacancy.id', ondelete='CASCADE'), primary_key=True)

    total_score = Column(Numeric(5, 2), nullable=False)
    skill_score = Column(Numeric(5, 2), nullable=False)
    experience_score = Column(Numeric(5, 2), nullable=False)
    education_score = Column(Numeric(5, 2), nullable=False)
    location_score = Column(Numeric(5, 2), nullable=False)
    salary_score = Column(Numeric(5, 2), nullable=False)

    skill_match_count = Column(Integer, nullable=False, default=0)
    skill_required_count = Column(Integer, nullable=False, default=0)
    is_recommended = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))
    calculated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    __table_args__ = (
        Index('idx_match_score_worker_total', 'worker_id', 'total_score'),
        Index('idx_match_score_vacancy_total', 'vacancy_id', 'total_score'),
        Index('idx_match_score_recommended', 'is_recommended'),
    )
