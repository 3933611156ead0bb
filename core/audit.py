#!/usr/bin/env python3
"""
Audit Service - Records security/business events for matching operations.

Audit writes are best-effort: a failure is logged and never reaches the caller.
"""

import logging
from typing import Any, Dict, Optional

from database.repositories.audit import AuditRepository

logger = logging.getLogger(__name__)

MATCH_SCORE_CALCULATED = 'MATCH_SCORE_CALCULATED'
WORKER_MATCHES_RECALCULATED = 'WORKER_MATCHES_RECALCULATED'
VACANCY_MATCHES_RECALCULATED = 'VACANCY_MATCHES_RECALCULATED'

SYSTEM_IP_ADDRESS = 'system'


class AuditService:
    def __init__(self, repo: AuditRepository):
        self.repo = repo

    async def log(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        target_user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Persist one audit event. Returns False if it could not be written."""
        try:
            await self.repo.create_event(
                event_type=event_type,
                user_id=user_id,
                target_user_id=target_user_id,
                ip_address=ip_address or SYSTEM_IP_ADDRESS,
                details=details,
            )
            return True
        except Exception as e:
            logger.error(f"Failed to write audit event {event_type}: {e}")
            return False
