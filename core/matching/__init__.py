"""
Matching Module - Score calculation, fan-out recalculation and cached recommendations.

- service.py: MatchingService, the upward API
- orchestrator.py: RecalculationOrchestrator, paged batch recalculation
- dto.py: RecalcResult
"""
from core.matching.dto import RecalcResult
from core.matching.orchestrator import RecalculationOrchestrator
from core.matching.service import MatchingService

__all__ = [
    'RecalcResult',
    'RecalculationOrchestrator',
    'MatchingService',
]
