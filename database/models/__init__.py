from .base import Base
from .worker import WorkerProfile, WorkerSkill, WorkerEducation, WorkerExperience
from .vacancy import Vacancy, VacancySkill
from .match import MatchScore
from .audit import AuditEvent

__all__ = [
    'Base',
    'WorkerProfile',
    'WorkerSkill',
    'WorkerEducation',
    'WorkerExperience',
    'Vacancy',
    'VacancySkill',
    'MatchScore',
    'AuditEvent',
]
