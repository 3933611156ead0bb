#!/usr/bin/env python3
"""
Scoring Models - Feature records consumed by the scorer and the score results it produces.

Feature records are built by the repository from ORM rows, so the scorer never
sees loosely-shaped data.
"""

from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field, asdict


EDUCATION_LEVELS = ['HIGH_SCHOOL', 'DIPLOMA', 'BACHELOR', 'MASTER', 'DOCTORATE']


@dataclass(frozen=True)
class WorkerSkill:
    code: str
    name: Optional[str] = None


@dataclass(frozen=True)
class WorkerEducation:
    degree_level: Optional[str] = None


@dataclass(frozen=True)
class WorkerExperience:
    start_year: Optional[int] = None
    end_year: Optional[int] = None  # None means the position is current


@dataclass(frozen=True)
class WorkerProfile:
    worker_id: str
    city: Optional[str] = None
    state: Optional[str] = None
    expected_salary: Optional[float] = None
    status: str = 'ACTIVE'


@dataclass
class WorkerFeatures:
    """Everything the scorer needs about one worker."""
    worker_id: str
    profile: Optional[WorkerProfile] = None
    skills: List[WorkerSkill] = field(default_factory=list)
    education: List[WorkerEducation] = field(default_factory=list)
    experience: List[WorkerExperience] = field(default_factory=list)


@dataclass(frozen=True)
class VacancySkill:
    code: str
    name: Optional[str] = None
    is_required: bool = False


@dataclass
class VacancyFeatures:
    """Everything the scorer needs about one vacancy."""
    id: str
    skills: List[VacancySkill] = field(default_factory=list)
    experience_min_years: Optional[int] = None
    experience_max_years: Optional[int] = None
    education_min_level: Optional[str] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    is_remote: bool = False
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_is_negotiable: bool = False
    status: str = 'OPEN'

    @property
    def required_skills(self) -> List[VacancySkill]:
        return [s for s in self.skills if s.is_required]


@dataclass
class ScoreComponents:
    """Sub-scores, weighted total and recommendation flag for one pair."""
    skill_score: float
    experience_score: float
    education_score: float
    location_score: float
    salary_score: float
    total_score: float
    skill_match_count: int
    skill_required_count: int
    is_recommended: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScoreResult(ScoreComponents):
    worker_id: str = ""
    vacancy_id: str = ""

    @classmethod
    def from_components(cls, worker_id: str, vacancy_id: str, components: ScoreComponents) -> "ScoreResult":
        return cls(worker_id=worker_id, vacancy_id=vacancy_id, **components.to_dict())


@dataclass
class ScoreSummary(ScoreResult):
    """Shape of one entry in a cached top-N match list."""
    cached_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreSummary":
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})
