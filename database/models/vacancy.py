import uuid

from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, Boolean, Integer, Numeric, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .base import Base


class Vacancy(Base):
    __tablename__ = 'vacancy'

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    employer_id = Column(UUID(as_uuid=False), nullable=True)

    title = Column(Text)
    status = Column(Text, nullable=False, default='DRAFT')  # DRAFT|OPEN|CLOSED

    # Requirements
    experience_min_years = Column(Integer)
    experience_max_years = Column(Integer)
    education_min_level = Column(Text)

    # Location
    location_city = Column(Text)
    location_state = Column(Text)
    is_remote = Column(Boolean, nullable=False, default=False)

    # Compensation
    salary_min = Column(Numeric(14, 2))
    salary_max = Column(Numeric(14, 2))
    salary_is_negotiable = Column(Boolean, nullable=False, default=False)

    published_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"), onupdate=sql_text("timezone('UTC', now())"))
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True)

    skills = relationship("VacancySkill", back_populates="vacancy", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_vacancy_status', 'status'),
        Index('idx_vacancy_created', 'created_at'),
    )


class VacancySkill(Base):
    __tablename__ = 'vacancy_skill'

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    vacancy_id = Column(UUID(as_uuid=False), ForeignKey('vacancy.id', ondelete='CASCADE'), nullable=False)

    skill_code = Column(Text, nullable=False)
    skill_name = Column(Text)
    is_required = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True)

    vacancy = relationship("Vacancy", back_populates="skills")

    __table_args__ = (
        Index('idx_vacancy_skill_vacancy', 'vacancy_id'),
        Index('idx_vacancy_skill_code', 'skill_code'),
    )
