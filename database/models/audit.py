import uuid

from sqlalchemy import Column, Text, TIMESTAMP, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID, JSONB

from .base import Base


class AuditEvent(Base):
    """Append-only record of matching events (scores calculated, recalculations run)."""
    __tablename__ = 'audit_event'

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))

    event_type = Column(Text, nullable=False)
    user_id = Column(Text, nullable=True)  # Actor
    target_user_id = Column(Text, nullable=True)
    ip_address = Column(Text, nullable=True)
    details = Column(JSONB, default={})

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    __table_args__ = (
        Index('idx_audit_event_type', 'event_type'),
        Index('idx_audit_event_user', 'user_id'),
        Index('idx_audit_event_created', 'created_at'),
    )
