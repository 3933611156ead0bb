from typing import Any, Dict, Optional

from database.models import AuditEvent
from database.repositories.base import BaseRepository


class AuditRepository(BaseRepository):
    async def create_event(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        target_user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        async with self.session() as session:
            session.add(AuditEvent(
                event_type=event_type,
                user_id=user_id,
                target_user_id=target_user_id,
                ip_address=ip_address,
                details=details or {},
            ))
