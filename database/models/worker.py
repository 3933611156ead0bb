import uuid

from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, Integer, Numeric, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .base import Base


class WorkerProfile(Base):
    """
    Job-seeker profile, keyed by the owning user's id.

    Only ACTIVE, non-deleted profiles take part in batch recalculation.
    """
    __tablename__ = 'worker_profile'

    user_id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))

    city = Column(Text)
    state = Column(Text)
    expected_salary = Column(Numeric(14, 2))
    status = Column(Text, nullable=False, default='ACTIVE')  # ACTIVE|INACTIVE|SUSPENDED

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"), onupdate=sql_text("timezone('UTC', now())"))
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True)

    skills = relationship("WorkerSkill", back_populates="worker", cascade="all, delete-orphan")
    education = relationship("WorkerEducation", back_populates="worker", cascade="all, delete-orphan")
    experience = relationship("WorkerExperience", back_populates="worker", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_worker_profile_status', 'status'),
        Index('idx_worker_profile_created', 'created_at'),
    )


class WorkerSkill(Base):
    __tablename__ = 'worker_skill'

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(UUID(as_uuid=False), ForeignKey('worker_profile.user_id', ondelete='CASCADE'), nullable=False)

    skill_code = Column(Text, nullable=False)
    skill_name = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True)

    worker = relationship("WorkerProfile", back_populates="skills")

    __table_args__ = (
        Index('idx_worker_skill_user', 'user_id'),
        Index('idx_worker_skill_code', 'skill_code'),
    )


class WorkerEducation(Base):
    __tablename__ = 'worker_education'

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(UUID(as_uuid=False), ForeignKey('worker_profile.user_id', ondelete='CASCADE'), nullable=False)

    degree_level = Column(Text)  # HIGH_SCHOOL|DIPLOMA|BACHELOR|MASTER|DOCTORATE
    institution = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True)

    worker = relationship("WorkerProfile", back_populates="education")

    __table_args__ = (
        Index('idx_worker_education_user', 'user_id'),
    )


class WorkerExperience(Base):
    __tablename__ = 'worker_experience'

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(UUID(as_uuid=False), ForeignKey('worker_profile.user_id', ondelete='CASCADE'), nullable=False)

    start_year = Column(Integer)
    end_year = Column(Integer)  # NULL while the position is current

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True)

    worker = relationship("WorkerProfile", back_populates="experience")

    __table_args__ = (
        Index('idx_worker_experience_user', 'user_id'),
    )
